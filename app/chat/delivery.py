"""
Write-and-broadcast routines shared by the REST views and the WebSocket relay.

Every message send and every mark-read, whichever path it arrives on, goes
through DeliveryCoordinator. Each operation has two halves:

    persist_*: synchronous ORM work through MessageService
        (participation check, store write, last-activity update)
    _publish_*: asynchronous broadcast to the conversation room, sent over
        the channel layer by SessionRegistry.broadcast

The live path runs the persist half through database_sync_to_async and awaits
the publish half. The request path runs the persist half directly in the view
thread and hands the publish half to async_to_sync; the channel layer then
hands each event to the consumer serving the session.

Outgoing events:
    message: {"message": <message record>} to the whole room, sender included
    read: {"conversationId", "userId"} to the whole room, reader included
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async

from core.services import ServiceResult

from chat.constants import WS_EVENTS
from chat.serializers import MessageSerializer
from chat.services import MessageService, coerce_id

if TYPE_CHECKING:
    from authentication.models import User
    from chat.registry import SessionRegistry

logger = logging.getLogger(__name__)


class DeliveryCoordinator:
    """
    Persist then broadcast, identically for both paths.

    Usage:
        coordinator = DeliveryCoordinator(registry)

        # WebSocket consumer (async)
        result = await coordinator.send_message(conversation_id, user, body="hi")

        # DRF view (sync)
        result = coordinator.send_message_sync(conversation_id, user, body="hi")
        if result.success:
            return Response(result.data, status=201)
    """

    def __init__(self, registry: SessionRegistry):
        self.registry = registry

    # ---------------------------------------------------------------- messages

    def persist_message(
        self,
        conversation_id: Any,
        sender: User,
        body: Any = "",
        file: dict | None = None,
    ) -> ServiceResult[dict]:
        """Store the message and return its serialized record."""
        result = MessageService.send_message(conversation_id, sender, body=body, file=file)
        return result.map(lambda message: MessageSerializer(message).data)

    async def send_message(
        self,
        conversation_id: Any,
        sender: User,
        body: Any = "",
        file: dict | None = None,
    ) -> ServiceResult[dict]:
        result = await database_sync_to_async(self.persist_message)(
            conversation_id, sender, body=body, file=file
        )
        if result:
            await self._publish_message(result.data)
        return result

    def send_message_sync(
        self,
        conversation_id: Any,
        sender: User,
        body: Any = "",
        file: dict | None = None,
    ) -> ServiceResult[dict]:
        result = self.persist_message(conversation_id, sender, body=body, file=file)
        if result:
            async_to_sync(self._publish_message)(result.data)
        return result

    async def _publish_message(self, record: dict) -> int:
        delivered = await self.registry.broadcast(
            record["conversationId"], WS_EVENTS.MESSAGE, {"message": record}
        )
        logger.debug(
            f"Message {record['id']} delivered to {delivered} sessions "
            f"in conversation {record['conversationId']}"
        )
        return delivered

    # --------------------------------------------------------------- mark read

    def persist_read(self, conversation_id: Any, user: User) -> ServiceResult[dict]:
        """
        Mark the conversation read for the user.

        Returns:
            ServiceResult with {"conversationId", "userId", "updatedCount"}
        """
        result = MessageService.mark_read(conversation_id, user)
        # mark_read only succeeds for a valid id, so coerce_id is never None here
        return result.map(
            lambda updated: {
                "conversationId": coerce_id(conversation_id),
                "userId": user.id,
                "updatedCount": updated,
            }
        )

    async def mark_read(self, conversation_id: Any, user: User) -> ServiceResult[dict]:
        result = await database_sync_to_async(self.persist_read)(conversation_id, user)
        if result:
            await self._publish_read(result.data)
        return result

    def mark_read_sync(self, conversation_id: Any, user: User) -> ServiceResult[dict]:
        result = self.persist_read(conversation_id, user)
        if result:
            async_to_sync(self._publish_read)(result.data)
        return result

    async def _publish_read(self, receipt: dict) -> int:
        return await self.registry.broadcast(
            receipt["conversationId"],
            WS_EVENTS.READ,
            {"conversationId": receipt["conversationId"], "userId": receipt["userId"]},
        )
