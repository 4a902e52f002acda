"""
WebSocket authentication middleware.

Verifies the JWT access token of a WebSocket handshake and attaches the user
to the scope. The same TokenService check the REST API uses decides, so an
expired or revoked-user token is refused on both paths.

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers
    - config/asgi.py: ASGI configuration

Token passing methods (first one found wins):
    1. Query string: ws://host/ws/chat/?token=<jwt_token>
    2. Header: Authorization: Bearer <jwt_token>
    3. Subprotocol: Sec-WebSocket-Protocol: jwt, <jwt_token>

Usage in config/asgi.py:
    from chat.middleware import JWTAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": JWTAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        ),
    })
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser

from authentication.services import TokenService

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(BaseMiddleware):
    """
    JWT authentication middleware for WebSocket connections.

    scope["user"] is the active user owning the token, or AnonymousUser when
    the token is missing, malformed, expired, or belongs to no active user.
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        token = (
            self._get_token_from_query(scope)
            or self._get_token_from_header(scope)
            or self._get_token_from_subprotocol(scope)
        )

        if token:
            scope["user"] = await self._get_user_from_token(token)
        else:
            scope["user"] = AnonymousUser()

        return await super().__call__(scope, receive, send)

    @staticmethod
    def _get_token_from_query(scope) -> str | None:
        query_string = scope.get("query_string", b"").decode()
        token_list = parse_qs(query_string).get("token", [])
        return token_list[0] if token_list else None

    @staticmethod
    def _get_token_from_header(scope) -> str | None:
        for name, value in scope.get("headers", []):
            if name.lower() != b"authorization":
                continue
            parts = value.decode("latin-1").split()
            if len(parts) == 2 and parts[0].lower() == "bearer":
                return parts[1]
        return None

    @staticmethod
    def _get_token_from_subprotocol(scope) -> str | None:
        """Expects: Sec-WebSocket-Protocol: jwt, <token>"""
        subprotocols = scope.get("subprotocols") or []
        if len(subprotocols) >= 2 and subprotocols[0] == "jwt":
            return subprotocols[1]
        return None

    @database_sync_to_async
    def _get_user_from_token(self, token: str):
        result = TokenService.authenticate_access(token)
        if not result:
            logger.warning(f"WebSocket token rejected: {result.error_code}")
            return AnonymousUser()
        return result.data
