"""
URL configuration for authentication app.

URL structure:
    /api/v1/auth/signup/   - Create account
    /api/v1/auth/login/    - Email/password login
    /api/v1/auth/refresh/  - Rotate refresh cookie
    /api/v1/auth/logout/   - Revoke refresh credential
    /api/v1/auth/me/       - Current user
"""

from django.urls import path

from authentication.views import (
    LoginView,
    LogoutView,
    MeView,
    RefreshView,
    SignupView,
)

app_name = "authentication"

urlpatterns = [
    path("signup/", SignupView.as_view(), name="signup"),
    path("login/", LoginView.as_view(), name="login"),
    path("refresh/", RefreshView.as_view(), name="refresh"),
    path("logout/", LogoutView.as_view(), name="logout"),
    path("me/", MeView.as_view(), name="me"),
]
