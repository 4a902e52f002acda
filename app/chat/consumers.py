"""
WebSocket consumer for real-time chat.

One ChatConsumer instance serves one connection on ws/chat/. The consumer is
a transport adapter: it turns the handshake, incoming JSON frames and the
disconnect into RelayEngine calls, and writes the "chat.event" messages
the relay sends to its channel back out as JSON frames.

Related files:
    - relay.py: Session state machine
    - middleware.py: JWT authentication (sets scope["user"])
    - registry.py: Sends relay events over the channel layer
    - routing.py: WebSocket URL patterns

Connection:
    ws://host/ws/chat/?token=<jwt_access_token>
    or Sec-WebSocket-Protocol: jwt, <jwt_access_token>

Outgoing frames all carry a "type" key:
    {"type": "connected", "userId": 3}
    {"type": "joined", "conversationId": 12}
    {"type": "message", "message": {...}}
    {"type": "read", "conversationId": 12, "userId": 3}
    {"type": "typing", "conversationId": 12, "userId": 3, "isTyping": true}
    {"type": "error", "message": "Not a participant", "code": "NOT_PARTICIPANT"}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.apps import apps

from chat.constants import WS_CLOSE_CODES

if TYPE_CHECKING:
    from chat.registry import LiveSession
    from chat.relay import RelayEngine

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for the chat channel.

    The relay can be injected through as_asgi(relay=...); otherwise the
    process-wide relay built by ChatConfig.ready() is used. Anonymous
    connections are closed with code 4001 before the handshake completes.
    Binary frames are answered with an error event.
    """

    def __init__(self, *args, relay: RelayEngine | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.relay = relay or apps.get_app_config("chat").relay
        self.session: LiveSession | None = None

    async def connect(self):
        """Authenticate the connection and register a live session."""
        user = self.scope.get("user")

        if user is None or not user.is_authenticated:
            logger.warning("Rejected unauthenticated chat connection")
            await self.close(code=WS_CLOSE_CODES.UNAUTHENTICATED)
            return

        subprotocols = self.scope.get("subprotocols") or []
        await self.accept(subprotocol="jwt" if subprotocols[:1] == ["jwt"] else None)

        result = await self.relay.connect(user, self.channel_name)
        if not result:
            logger.warning(f"Relay refused user {user.id}: {result.error_code}")
            if result.error_code == "UNAUTHENTICATED":
                await self.close(code=WS_CLOSE_CODES.UNAUTHENTICATED)
            else:
                await self.close()
            return
        self.session = result.data

    async def disconnect(self, close_code):
        if self.session is not None:
            await self.relay.disconnect(self.session)
            logger.debug(f"Chat socket closed with code {close_code}")

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        # Only text frames carry JSON; anything else is an unknown message
        if not text_data:
            await self.receive_json(None)
            return
        await super().receive(text_data=text_data, bytes_data=bytes_data, **kwargs)

    async def receive_json(self, content, **kwargs):
        """Hand an incoming frame to the relay."""
        if self.session is None:
            return
        await self.relay.dispatch(self.session, content)

    async def chat_event(self, event):
        """
        Handle chat.event messages from the channel layer.

        Sends the relay event to the WebSocket client.
        """
        await self.send_json({"type": event["event"], **event["payload"]})

    @classmethod
    async def decode_json(cls, text_data):
        # Malformed JSON becomes a frame the relay rejects as unknown
        try:
            return await super().decode_json(text_data)
        except ValueError:
            return None
