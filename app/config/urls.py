"""
URL configuration for the Django application.

URL Structure:
    /                              - ReDoc API documentation
    /schema/                       - OpenAPI schema (YAML)
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /api/v1/auth/                  - Authentication endpoints
        signup/                    - Create account
        login/                     - Email/password login
        refresh/                   - Rotate refresh cookie, new access token
        logout/                    - Revoke refresh credential
        me/                        - Current user
    /api/v1/chat/                  - Chat endpoints
        conversations/             - Conversation list/create-or-find
        conversations/{id}/        - Conversation delete
        conversations/{id}/read/   - Mark conversation as read
        conversations/{id}/messages/ - Message history/send
    /media/                        - Uploaded attachments (DEBUG only)

WebSocket routes are in chat/routing.py (mounted by config/asgi.py).

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Chat Relay Admin"
admin.site.site_title = "Chat Relay Admin"
admin.site.index_title = "Conversations and users"
