"""
In-memory index of live WebSocket sessions and the rooms they joined.

The registry answers two questions for the relay:
    - Which channel does a session receive on?
    - Which sessions are currently joined to a conversation?

Events travel over the Channels channel layer: every send goes to the
consumer's own channel as a "chat.event" message, which ChatConsumer.chat_event
writes to the socket. The room index stays here rather than in channel layer
groups because a broadcast must skip the sender and report how many sessions
it reached.

It is owned by the process (built in ChatConfig.ready()) and handed to the
relay and the delivery coordinator at construction, so tests build their
own isolated instances.

Membership is never cached here: join() asks the injected ``membership``
callable every time, and the caller re-checks participation on every
mutating operation anyway.

Related files:
    - relay.py: Session state machine driving the registry
    - delivery.py: Write-and-broadcast routines
    - consumers.py: chat_event handler on the receiving end
    - apps.py: Process-wide instance
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from channels.exceptions import ChannelFull
from channels.layers import get_channel_layer

from core.services import ServiceResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from channels.layers import BaseChannelLayer

    MembershipCheck = Callable[[Any, int], Awaitable[ServiceResult[int]]]

logger = logging.getLogger(__name__)

# Channel layer message type, handled by ChatConsumer.chat_event
CHAT_EVENT = "chat.event"


class SessionState(str, Enum):
    """Lifecycle of a live session."""

    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    DISCONNECTED = "disconnected"


@dataclass(eq=False)
class LiveSession:
    """
    One live connection of one user.

    Attributes:
        user: Verified identity owning the session
        channel_name: Channel layer name of the consumer serving the connection
        session_id: Opaque unique id
        state: Lifecycle state
        rooms: Conversation ids this session joined
    """

    user: Any
    channel_name: str
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.CONNECTING
    rooms: set[int] = field(default_factory=set)

    @property
    def user_id(self) -> int:
        return self.user.id

    def __repr__(self) -> str:
        return f"LiveSession(session_id={self.session_id!r}, user_id={self.user_id}, state={self.state.value})"


class SessionRegistry:
    """
    Thread-safe session and room index.

    A single lock guards both maps. Sends run outside the lock, so a slow
    channel never blocks joins or other broadcasts.

    Usage:
        registry = SessionRegistry(membership=check_membership)
        registry.register(session)
        result = await registry.join(session, 12)
        delivered = await registry.broadcast(12, "typing", payload, exclude={session.session_id})
    """

    def __init__(self, membership: MembershipCheck, channel_layer: BaseChannelLayer | None = None):
        self._membership = membership
        self._channel_layer = channel_layer
        self._lock = threading.Lock()
        self._sessions: dict[str, LiveSession] = {}
        self._rooms: dict[int, set[str]] = {}

    @property
    def channel_layer(self) -> BaseChannelLayer:
        # Resolved on first use so the registry can be built before settings load
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def register(self, session: LiveSession) -> None:
        """Add a session. One user may own any number of sessions."""
        with self._lock:
            self._sessions[session.session_id] = session
        logger.debug(f"Registered session {session.session_id} for user {session.user_id}")

    def get(self, session_id: str) -> LiveSession | None:
        with self._lock:
            return self._sessions.get(session_id)

    def room_members(self, conversation_id: int) -> set[str]:
        """Session ids joined to a conversation (a copy)."""
        with self._lock:
            return set(self._rooms.get(conversation_id, ()))

    def is_joined(self, session_id: str, conversation_id: int) -> bool:
        with self._lock:
            return session_id in self._rooms.get(conversation_id, ())

    async def join(self, session: LiveSession, conversation_id: Any) -> ServiceResult[int]:
        """
        Join a session to a conversation room after a store membership check.

        Returns:
            ServiceResult with the normalized conversation id, or the
            membership failure (INVALID_ARGUMENT, CONVERSATION_NOT_FOUND,
            NOT_PARTICIPANT). A failed join leaves the index untouched.
        """
        result = await self._membership(conversation_id, session.user_id)
        if not result:
            logger.info(
                f"Join denied for user {session.user_id} on conversation "
                f"{conversation_id}: {result.error_code}"
            )
            return result

        cid = result.data
        with self._lock:
            # Session may have been unregistered while the check was running
            if session.session_id not in self._sessions:
                return ServiceResult.failure("Session is not registered", error_code="UNAUTHENTICATED")
            self._rooms.setdefault(cid, set()).add(session.session_id)
            session.rooms.add(cid)
        logger.debug(f"Session {session.session_id} joined conversation {cid}")
        return ServiceResult.success(cid)

    def leave(self, session: LiveSession, conversation_id: int) -> None:
        with self._lock:
            self._discard_member(conversation_id, session.session_id)
            session.rooms.discard(conversation_id)

    def unregister_all(self, session: LiveSession) -> None:
        """Remove the session from every room and from the index. Idempotent."""
        with self._lock:
            for cid in list(session.rooms):
                self._discard_member(cid, session.session_id)
            session.rooms.clear()
            self._sessions.pop(session.session_id, None)

    async def send(self, session: LiveSession, event: str, payload: dict[str, Any]) -> bool:
        """
        Send one event to a single session over the channel layer.

        A session whose channel is full is treated as gone: it is removed
        from every room and from the index.

        Returns:
            True if the channel layer accepted the event
        """
        try:
            await self.channel_layer.send(
                session.channel_name,
                {"type": CHAT_EVENT, "event": event, "payload": payload},
            )
        except ChannelFull:
            logger.warning(
                f"Dropping session {session.session_id} after failed {event} "
                f"delivery: channel {session.channel_name} is full"
            )
            self.unregister_all(session)
            return False
        return True

    async def broadcast(
        self,
        conversation_id: int,
        event: str,
        payload: dict[str, Any],
        exclude: Iterable[str] = (),
    ) -> int:
        """
        Send an event to every session joined to the conversation.

        Members are resolved now, not when they joined. An empty room is a
        no-op.

        Returns:
            Number of sessions the event was delivered to
        """
        excluded = set(exclude)
        with self._lock:
            targets = [
                self._sessions[sid]
                for sid in self._rooms.get(conversation_id, ())
                if sid not in excluded and sid in self._sessions
            ]
        if not targets:
            return 0

        results = await asyncio.gather(*(self.send(session, event, payload) for session in targets))
        return sum(results)

    def _discard_member(self, conversation_id: int, session_id: str) -> None:
        # Caller holds the lock
        members = self._rooms.get(conversation_id)
        if members is None:
            return
        members.discard(session_id)
        if not members:
            del self._rooms[conversation_id]
