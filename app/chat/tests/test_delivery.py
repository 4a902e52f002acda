"""
Tests for DeliveryCoordinator.

The request-path wrappers (send_message_sync, mark_read_sync) are tested
from plain sync tests, the way a DRF view calls them. Sessions are joined
through a registry whose membership check admits everyone, so only the
coordinator's own participation check (through MessageService) is under
test here; the registry's check is covered in test_registry.py.
"""

import asyncio

import pytest
from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async

from chat.delivery import DeliveryCoordinator
from chat.models import Message
from chat.registry import LiveSession, SessionRegistry
from chat.services import coerce_id
from chat.tests.factories import MessageFactory
from core.services import ServiceResult


async def admit_everyone(conversation_id, user_id):
    return ServiceResult.success(coerce_id(conversation_id))


@pytest.fixture
def open_registry(channel_layer):
    return SessionRegistry(membership=admit_everyone, channel_layer=channel_layer)


@pytest.fixture
def open_coordinator(open_registry):
    return DeliveryCoordinator(open_registry)


@pytest.fixture
def join(open_registry, make_recorder):
    """Register a recording session for user and join it to a conversation."""

    def _join(user, conversation):
        recorder = make_recorder()
        session = LiveSession(user=user, channel_name=recorder.channel_name)
        open_registry.register(session)
        async_to_sync(open_registry.join)(session, conversation.id)
        return session, recorder

    return _join


class TestSendMessageSync:
    def test_persists_and_broadcasts_to_room_including_sender(
        self, open_coordinator, join, conversation, customer, agent
    ):
        _, customer_events = join(customer, conversation)
        _, agent_events = join(agent, conversation)

        result = open_coordinator.send_message_sync(conversation.id, customer, body="hello")

        assert result.success
        record = result.data
        assert record["body"] == "hello"
        assert record["senderId"] == customer.id
        assert record["readBy"] == [customer.id]
        assert customer_events.payloads("message") == [{"message": record}]
        assert agent_events.payloads("message") == [{"message": record}]

    def test_record_matches_stored_message(self, open_coordinator, conversation, customer):
        record = open_coordinator.send_message_sync(conversation.id, customer, body="hi").data

        message = Message.objects.get(pk=record["id"])
        assert record["conversationId"] == message.conversation_id
        assert record["sender"]["name"] == customer.name

    def test_failure_broadcasts_nothing(self, open_coordinator, join, conversation, customer, outsider):
        _, customer_events = join(customer, conversation)

        result = open_coordinator.send_message_sync(conversation.id, outsider, body="intrusion")

        assert result.error_code == "NOT_PARTICIPANT"
        assert customer_events.events == []
        assert Message.objects.count() == 0

    def test_no_live_sessions_still_persists(self, open_coordinator, conversation, customer):
        result = open_coordinator.send_message_sync(conversation.id, customer, body="anyone?")

        assert result.success
        assert Message.objects.filter(pk=result.data["id"]).exists()


class TestMarkReadSync:
    def test_marks_read_and_broadcasts_receipt_to_room_including_reader(
        self, open_coordinator, join, conversation, customer, agent
    ):
        for _ in range(3):
            MessageFactory(conversation=conversation, sender=customer)
        _, customer_events = join(customer, conversation)
        _, agent_events = join(agent, conversation)

        result = open_coordinator.mark_read_sync(str(conversation.id), agent)

        assert result.data == {
            "conversationId": conversation.id,
            "userId": agent.id,
            "updatedCount": 3,
        }
        receipt = {"conversationId": conversation.id, "userId": agent.id}
        assert customer_events.payloads("read") == [receipt]
        assert agent_events.payloads("read") == [receipt]

    def test_second_call_updates_nothing(self, open_coordinator, conversation, customer, agent):
        MessageFactory(conversation=conversation, sender=customer)
        open_coordinator.mark_read_sync(conversation.id, agent)

        result = open_coordinator.mark_read_sync(conversation.id, agent)

        assert result.data["updatedCount"] == 0

    def test_non_participant_denied_without_broadcast(
        self, open_coordinator, join, conversation, customer, outsider
    ):
        _, customer_events = join(customer, conversation)

        result = open_coordinator.mark_read_sync(conversation.id, outsider)

        assert result.error_code == "NOT_PARTICIPANT"
        assert customer_events.events == []


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
class TestLivePath:
    async def test_live_send_matches_request_path_shape(
        self, open_coordinator, open_registry, conversation, customer, agent, recorder
    ):
        session = LiveSession(user=agent, channel_name=recorder.channel_name)
        open_registry.register(session)
        await open_registry.join(session, conversation.id)

        live = await open_coordinator.send_message(conversation.id, customer, body="live")
        request = await database_sync_to_async(open_coordinator.send_message_sync)(
            conversation.id, customer, body="request"
        )

        assert live.success and request.success
        assert set(live.data) == set(request.data)
        assert [p["message"]["body"] for p in recorder.payloads("message")] == ["live", "request"]

    async def test_live_mark_read(self, open_coordinator, conversation, customer, agent):
        await database_sync_to_async(MessageFactory)(conversation=conversation, sender=customer)

        result = await open_coordinator.mark_read(conversation.id, agent)

        assert result.data["updatedCount"] == 1

    async def test_concurrent_mark_read_equals_one_call(self, open_coordinator, conversation, customer, agent):
        messages = [
            await database_sync_to_async(MessageFactory)(conversation=conversation, sender=customer)
            for _ in range(3)
        ]

        results = await asyncio.gather(
            *(open_coordinator.mark_read(conversation.id, agent) for _ in range(5))
        )

        assert all(result.success for result in results)
        for message in messages:
            readers = await database_sync_to_async(
                lambda pk: set(Message.objects.get(pk=pk).read_by.values_list("id", flat=True))
            )(message.id)
            assert readers == {customer.id, agent.id}
        count = await database_sync_to_async(Message.read_by.through.objects.count)()
        assert count == 6
