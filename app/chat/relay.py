"""
Relay engine: the per-session state machine behind the chat WebSocket.

The consumer is a thin transport adapter; every decision about what a
session may do lives here so it can be tested without a socket.

Session lifecycle:
    CONNECTING --connect()--> AUTHENTICATED --disconnect()--> DISCONNECTED

Per conversation a session is either joined or not, as tracked by the
registry. typing, sendMessage and markRead require a prior joinRoom, and
sendMessage/markRead re-check participation against the store as well.

Incoming frames:
    {"type": "joinRoom", "conversationId": 12}
    {"type": "typing", "conversationId": 12, "isTyping": true}
    {"type": "sendMessage", "conversationId": 12, "body": "hi", "file": {...}}
    {"type": "markRead", "conversationId": 12}

Errors are sent to the originating session only, as
{"type": "error", "message": ..., "code": ...}, and never close it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from channels.db import database_sync_to_async
from django.db import DatabaseError

from authentication.services import AuthService
from core.services import ServiceResult

from chat.constants import WS_EVENTS
from chat.registry import LiveSession, SessionState
from chat.services import coerce_id

if TYPE_CHECKING:
    from chat.delivery import DeliveryCoordinator
    from chat.registry import SessionRegistry

logger = logging.getLogger(__name__)


class RelayEngine:
    """
    Drives sessions through connect, join, typing, send, mark read and
    disconnect.

    Usage:
        relay = RelayEngine(registry, coordinator)
        result = await relay.connect(user, channel_name)
        session = result.data
        await relay.dispatch(session, {"type": "joinRoom", "conversationId": 12})
        await relay.disconnect(session)
    """

    def __init__(self, registry: SessionRegistry, coordinator: DeliveryCoordinator):
        self.registry = registry
        self.coordinator = coordinator
        self._handlers = {
            WS_EVENTS.JOIN_ROOM: self.join_room,
            WS_EVENTS.TYPING: self.typing,
            WS_EVENTS.SEND_MESSAGE: self.send_message,
            WS_EVENTS.MARK_READ: self.mark_read,
        }

    async def connect(self, user, channel_name: str) -> ServiceResult[LiveSession]:
        """
        Register a verified user's connection.

        Anonymous or inactive users are refused and nothing is registered.
        If the `connected` event cannot be delivered the session is removed
        again and a SERVER_ERROR failure is returned.
        """
        if user is None or not getattr(user, "is_authenticated", False) or not user.is_active:
            return ServiceResult.failure("Authentication required", error_code="UNAUTHENTICATED")

        session = LiveSession(user=user, channel_name=channel_name)
        session.state = SessionState.AUTHENTICATED
        self.registry.register(session)
        delivered = False
        try:
            delivered = await self.registry.send(session, WS_EVENTS.CONNECTED, {"userId": user.id})
        finally:
            if not delivered:
                session.state = SessionState.DISCONNECTED
                self.registry.unregister_all(session)
        if not delivered:
            logger.warning(f"User {user.id} left before the handshake completed")
            return ServiceResult.failure("Connection closed during handshake", error_code="SERVER_ERROR")

        await self._touch_presence(session)

        logger.info(f"User {user.id} connected (session {session.session_id})")
        return ServiceResult.success(session)

    async def dispatch(self, session: LiveSession, frame: Any) -> ServiceResult:
        """Route one incoming frame to its handler."""
        if session.state != SessionState.AUTHENTICATED:
            return ServiceResult.failure("Session is not connected", error_code="UNAUTHENTICATED")

        event = frame.get("type") if isinstance(frame, dict) else None
        handler = self._handlers.get(event)
        if handler is None:
            result = ServiceResult.failure(
                f"Unknown message type: {event}", error_code="INVALID_ARGUMENT"
            )
            await self._send_error(session, result)
            return result

        try:
            return await handler(session, frame)
        except DatabaseError:
            logger.exception(f"Persistence failure handling {event} for session {session.session_id}")
            result = ServiceResult.failure("Server error", error_code="SERVER_ERROR")
            await self._send_error(session, result)
            return result

    async def join_room(self, session: LiveSession, frame: dict) -> ServiceResult[int]:
        """
        Join a conversation room.

        On success the session receives `joined`, its unread messages are
        marked read, and `read` goes to the room. On denial only the session
        hears about it.
        """
        result = await self.registry.join(session, frame.get("conversationId"))
        if not result:
            await self._send_error(session, result)
            return result

        cid = result.data
        await self.registry.send(session, WS_EVENTS.JOINED, {"conversationId": cid})
        await self.coordinator.mark_read(cid, session.user)
        return result

    async def typing(self, session: LiveSession, frame: dict) -> ServiceResult[int]:
        """Broadcast a typing indicator to everyone in the room but the sender."""
        joined = await self._require_joined(session, frame)
        if not joined:
            return joined

        cid = joined.data
        await self.registry.broadcast(
            cid,
            WS_EVENTS.TYPING,
            {
                "conversationId": cid,
                "userId": session.user_id,
                "isTyping": bool(frame.get("isTyping")),
            },
            exclude={session.session_id},
        )
        return joined

    async def send_message(self, session: LiveSession, frame: dict) -> ServiceResult[dict]:
        joined = await self._require_joined(session, frame)
        if not joined:
            return joined

        result = await self.coordinator.send_message(
            joined.data,
            session.user,
            body=frame.get("body", ""),
            file=frame.get("file"),
        )
        if not result:
            await self._send_error(session, result)
        return result

    async def mark_read(self, session: LiveSession, frame: dict) -> ServiceResult[dict]:
        joined = await self._require_joined(session, frame)
        if not joined:
            return joined

        result = await self.coordinator.mark_read(joined.data, session.user)
        if not result:
            await self._send_error(session, result)
        return result

    async def disconnect(self, session: LiveSession | None) -> None:
        """Release every room and the registry entry. Safe to call twice."""
        if session is None or session.state == SessionState.DISCONNECTED:
            return

        session.state = SessionState.DISCONNECTED
        self.registry.unregister_all(session)
        await self._touch_presence(session)
        logger.info(f"User {session.user_id} disconnected (session {session.session_id})")

    async def _require_joined(self, session: LiveSession, frame: dict) -> ServiceResult[int]:
        raw = frame.get("conversationId")
        if raw is None:
            result = ServiceResult.failure("conversationId is required", error_code="INVALID_ARGUMENT")
        else:
            cid = coerce_id(raw)
            if cid is not None and self.registry.is_joined(session.session_id, cid):
                return ServiceResult.success(cid)
            result = ServiceResult.failure("Join the conversation first", error_code="NOT_JOINED")

        await self._send_error(session, result)
        return result

    async def _send_error(self, session: LiveSession, result: ServiceResult) -> None:
        await self.registry.send(
            session, WS_EVENTS.ERROR, {"message": result.error, "code": result.error_code}
        )

    async def _touch_presence(self, session: LiveSession) -> None:
        try:
            await database_sync_to_async(AuthService.touch_presence)(session.user_id)
        except DatabaseError as exc:
            logger.warning(f"Could not update presence for user {session.user_id}: {exc}")
