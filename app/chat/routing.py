"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - The single chat channel; rooms are joined with joinRoom frames

Authentication:
    JWT access token as query parameter (?token=...), Authorization header,
    or the subprotocol pair ["jwt", <token>]. JWTAuthMiddleware validates it
    and attaches the user to the consumer's scope.
"""

from django.urls import path

from chat import consumers

websocket_urlpatterns = [
    path("ws/chat/", consumers.ChatConsumer.as_asgi()),
]
