"""
ASGI config for the Django application.

This file exposes the ASGI callable as a module-level variable named
`application`. It routes:
- HTTP requests to Django (REST API, admin, docs)
- WebSocket connections on ws/chat/ to the chat consumer

Serve with Daphne (`daphne config.asgi:application`, or `runserver`, which
Daphne takes over). Run a single process: live sessions and rooms are kept
in that process's memory.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

# Set the default Django settings module for the ASGI application
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django ASGI application early to ensure settings are loaded
# and ChatConfig.ready() has built the relay before routing is imported
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        # 1. AllowedHostsOriginValidator - origin must match ALLOWED_HOSTS
        # 2. JWTAuthMiddleware - sets scope["user"] from the access token
        # 3. URLRouter - ws/chat/ to ChatConsumer
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
    }
)
