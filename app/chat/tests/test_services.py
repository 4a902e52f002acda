"""
Tests for chat service layer business logic.

- ConversationService: create-or-find, membership, listing, deletion
- MessageService: send, mark read, history
- AttachmentService: upload storage

Test Organization:
    - Each service method has its own test class
    - Tests use descriptive names following: test_<scenario>_<expected_outcome>

Testing Philosophy:
    Tests focus on observable behavior:
    - ServiceResult success/failure states and error codes
    - Database state changes (and their absence on failure)
"""

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from authentication.models import UserRole
from authentication.tests.factories import UserFactory
from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation, Message, Participant
from chat.services import (
    AttachmentService,
    ConversationService,
    MessageService,
    coerce_id,
)
from chat.tests.factories import ConversationFactory, MessageFactory


class TestCoerceId:
    @pytest.mark.parametrize(
        "raw, expected",
        [(7, 7), ("7", 7), (" 12 ", 12), (0, None), (-3, None), ("abc", None),
         (None, None), (True, None), (1.5, None), ("", None)],
    )
    def test_coerce_id(self, raw, expected):
        assert coerce_id(raw) == expected


# =============================================================================
# ConversationService
# =============================================================================


class TestConversationServiceCreateOrFind:
    def test_creates_conversation_with_creator_and_participants(self, customer, agent):
        result = ConversationService.create_or_find(
            creator=customer, participant_ids=[agent.id], topic="Order #12", product_id="p-1"
        )

        assert result.success
        conversation, created = result.data
        assert created is True
        assert set(conversation.participants.values_list("user_id", flat=True)) == {customer.id, agent.id}
        assert conversation.topic == "Order #12"
        assert conversation.product_id == "p-1"

    def test_creator_keeps_own_role_and_others_join_as_agent(self, customer):
        other_customer = UserFactory(role=UserRole.CUSTOMER)

        result = ConversationService.create_or_find(
            creator=customer, participant_ids=[other_customer.id]
        )

        conversation, _ = result.data
        roles = dict(conversation.participants.values_list("user_id", "role"))
        assert roles == {customer.id: UserRole.CUSTOMER, other_customer.id: UserRole.AGENT}

    def test_returns_existing_conversation_for_same_participants_and_topic(self, customer, agent):
        first, _ = ConversationService.create_or_find(
            creator=customer, participant_ids=[agent.id], topic="Order #12"
        ).data

        result = ConversationService.create_or_find(
            creator=agent, participant_ids=[customer.id], topic="  Order #12 "
        )

        conversation, created = result.data
        assert created is False
        assert conversation.pk == first.pk
        assert Conversation.objects.count() == 1

    def test_different_topic_creates_new_conversation(self, customer, agent):
        ConversationService.create_or_find(creator=customer, participant_ids=[agent.id], topic="A")

        result = ConversationService.create_or_find(
            creator=customer, participant_ids=[agent.id], topic="B"
        )

        assert result.data[1] is True
        assert Conversation.objects.count() == 2

    def test_superset_of_participants_creates_new_conversation(self, customer, agent):
        ConversationService.create_or_find(creator=customer, participant_ids=[agent.id])
        third = UserFactory()

        result = ConversationService.create_or_find(
            creator=customer, participant_ids=[agent.id, third.id]
        )

        assert result.data[1] is True

    def test_duplicate_ids_are_collapsed(self, customer, agent):
        result = ConversationService.create_or_find(
            creator=customer, participant_ids=[agent.id, str(agent.id), customer.id]
        )

        assert result.success
        assert Participant.objects.filter(conversation=result.data[0]).count() == 2

    def test_only_creator_fails(self, customer):
        result = ConversationService.create_or_find(creator=customer, participant_ids=[customer.id])

        assert not result.success
        assert result.error_code == "INVALID_ARGUMENT"
        assert Conversation.objects.count() == 0

    def test_unknown_participant_fails(self, customer):
        result = ConversationService.create_or_find(creator=customer, participant_ids=[999999])

        assert not result.success
        assert result.error_code == "INVALID_ARGUMENT"
        assert "participantIds" in result.errors

    def test_inactive_participant_fails(self, customer):
        inactive = UserFactory(is_active=False)

        result = ConversationService.create_or_find(creator=customer, participant_ids=[inactive.id])

        assert result.error_code == "INVALID_ARGUMENT"

    def test_malformed_participant_id_fails(self, customer):
        result = ConversationService.create_or_find(creator=customer, participant_ids=["abc"])

        assert result.error_code == "INVALID_ARGUMENT"

    def test_participant_ids_not_a_list_fails(self, customer, agent):
        result = ConversationService.create_or_find(creator=customer, participant_ids=agent.id)

        assert result.error_code == "INVALID_ARGUMENT"

    def test_blank_topic_is_stored_as_none(self, customer, agent):
        result = ConversationService.create_or_find(
            creator=customer, participant_ids=[agent.id], topic="   "
        )

        assert result.data[0].topic is None


class TestConversationServiceCheckMembership:
    def test_participant_passes_with_int_id(self, conversation, customer):
        result = ConversationService.check_membership(str(conversation.id), customer.id)

        assert result.success
        assert result.data == conversation.id

    def test_non_participant_denied(self, conversation, outsider):
        result = ConversationService.check_membership(conversation.id, outsider.id)

        assert result.error_code == "NOT_PARTICIPANT"

    def test_unknown_conversation(self, customer):
        result = ConversationService.check_membership(424242, customer.id)

        assert result.error_code == "CONVERSATION_NOT_FOUND"

    def test_malformed_id_is_not_found(self, customer):
        result = ConversationService.check_membership("not-an-id", customer.id)

        assert result.error_code == "CONVERSATION_NOT_FOUND"

    def test_missing_id_is_invalid_argument(self, customer):
        result = ConversationService.check_membership(None, customer.id)

        assert result.error_code == "INVALID_ARGUMENT"


class TestConversationServiceListForUser:
    def test_lists_only_own_conversations(self, conversation, customer, outsider):
        ConversationFactory(participants=[outsider, UserFactory()])

        ids = [c.id for c in ConversationService.list_for_user(customer)]

        assert ids == [conversation.id]

    def test_unread_count_excludes_messages_user_read(self, conversation, customer, agent):
        MessageFactory(conversation=conversation, sender=agent)
        MessageFactory(conversation=conversation, sender=agent)
        MessageFactory(conversation=conversation, sender=customer)

        listed = ConversationService.list_for_user(customer).get(pk=conversation.pk)

        assert listed.unread_count == 2

    def test_unread_count_is_zero_without_messages(self, conversation, customer):
        listed = ConversationService.list_for_user(customer).get(pk=conversation.pk)

        assert listed.unread_count == 0

    def test_most_recent_activity_first(self, customer, agent):
        quiet = ConversationFactory(participants=[customer, agent], topic="quiet")
        busy = ConversationFactory(participants=[customer, agent], topic="busy")
        MessageService.send_message(quiet.id, customer, body="bump")

        ids = [c.id for c in ConversationService.list_for_user(customer)]

        assert ids == [quiet.id, busy.id]


class TestConversationServiceDelete:
    def test_agent_deletes_conversation_and_messages(self, conversation, customer, agent):
        MessageService.send_message(conversation.id, customer, body="hello")

        result = ConversationService.delete(conversation.id, agent)

        assert result.success
        assert not Conversation.objects.filter(pk=conversation.pk).exists()
        assert Message.objects.count() == 0

    def test_admin_may_delete_without_participating(self, conversation, admin_user):
        assert ConversationService.delete(conversation.id, admin_user).success

    def test_customer_denied(self, conversation, customer):
        result = ConversationService.delete(conversation.id, customer)

        assert result.error_code == "PERMISSION_DENIED"
        assert Conversation.objects.filter(pk=conversation.pk).exists()

    def test_role_is_checked_before_existence(self, customer):
        result = ConversationService.delete(424242, customer)

        assert result.error_code == "PERMISSION_DENIED"

    def test_unknown_conversation(self, agent):
        result = ConversationService.delete(424242, agent)

        assert result.error_code == "CONVERSATION_NOT_FOUND"


# =============================================================================
# MessageService
# =============================================================================


class TestMessageServiceSendMessage:
    def test_sender_is_in_reader_set(self, conversation, customer):
        result = MessageService.send_message(conversation.id, customer, body="hello")

        assert result.success
        assert list(result.data.read_by.values_list("id", flat=True)) == [customer.id]

    def test_updates_conversation_last_activity(self, conversation, customer):
        message = MessageService.send_message(conversation.id, customer, body="hello").data

        conversation.refresh_from_db()
        assert conversation.last_message_id == message.id
        assert conversation.last_message_at == message.created_at

    def test_body_is_stored_verbatim(self, conversation, customer):
        message = MessageService.send_message(conversation.id, customer, body="    def f():\n").data

        message.refresh_from_db()
        assert message.body == "    def f():\n"

    def test_attachment_without_body(self, conversation, customer):
        result = MessageService.send_message(
            conversation.id,
            customer,
            body="",
            file={"url": "https://cdn.example.com/a.pdf", "name": "a.pdf", "type": "application/pdf", "size": "10"},
        )

        assert result.success
        assert result.data.file == {
            "url": "https://cdn.example.com/a.pdf",
            "name": "a.pdf",
            "type": "application/pdf",
            "size": 10,
        }

    @pytest.mark.parametrize("body", ["", "   ", None])
    def test_empty_message_rejected(self, conversation, customer, body):
        result = MessageService.send_message(conversation.id, customer, body=body)

        assert result.error_code == "INVALID_ARGUMENT"
        assert Message.objects.count() == 0

    @pytest.mark.parametrize(
        "file",
        ["a.png", {"name": "a.png"}, {"url": ""}, {"url": "x", "size": -1}, {"url": "x", "size": "big"}],
    )
    def test_malformed_attachment_rejected(self, conversation, customer, file):
        result = MessageService.send_message(conversation.id, customer, body="hi", file=file)

        assert result.error_code == "INVALID_ARGUMENT"
        assert Message.objects.count() == 0

    @pytest.mark.parametrize("size", [MESSAGE_CONFIG.MAX_ATTACHMENT_BYTES + 1, 10**20, str(10**20)])
    def test_oversized_attachment_rejected(self, conversation, customer, size):
        result = MessageService.send_message(
            conversation.id, customer, file={"url": "https://cdn.example.com/a.bin", "size": size}
        )

        assert result.error_code == "INVALID_ARGUMENT"
        assert "file" in result.errors
        assert Message.objects.count() == 0

    def test_attachment_at_size_limit_accepted(self, conversation, customer):
        result = MessageService.send_message(
            conversation.id,
            customer,
            file={"url": "https://cdn.example.com/a.bin", "size": MESSAGE_CONFIG.MAX_ATTACHMENT_BYTES},
        )

        assert result.success

    def test_body_too_long_rejected(self, conversation, customer):
        result = MessageService.send_message(
            conversation.id, customer, body="x" * (MESSAGE_CONFIG.MAX_BODY_LENGTH + 1)
        )

        assert result.error_code == "INVALID_ARGUMENT"

    def test_non_participant_denied_without_mutation(self, conversation, outsider):
        result = MessageService.send_message(conversation.id, outsider, body="intrusion")

        assert result.error_code == "NOT_PARTICIPANT"
        assert Message.objects.count() == 0
        conversation.refresh_from_db()
        assert conversation.last_message_id is None

    def test_unknown_conversation(self, customer):
        result = MessageService.send_message(424242, customer, body="hi")

        assert result.error_code == "CONVERSATION_NOT_FOUND"


class TestMessageServiceValidateBody:
    def test_returns_body_unchanged(self):
        assert MessageService.validate_body("  hi\n", has_attachment=False).data == "  hi\n"

    def test_blank_body_needs_attachment(self):
        assert MessageService.validate_body("  ", has_attachment=False).error_code == "INVALID_ARGUMENT"
        assert MessageService.validate_body(None, has_attachment=True).data == ""

    def test_length_counts_whitespace(self):
        body = " " * MESSAGE_CONFIG.MAX_BODY_LENGTH + "x"

        assert MessageService.validate_body(body, has_attachment=False).error_code == "INVALID_ARGUMENT"


class TestMessageServiceMarkRead:
    def test_marks_every_unread_message(self, conversation, customer, agent):
        messages = [MessageFactory(conversation=conversation, sender=customer) for _ in range(3)]

        result = MessageService.mark_read(conversation.id, agent)

        assert result.data == 3
        for message in messages:
            assert set(message.read_by.values_list("id", flat=True)) == {customer.id, agent.id}

    def test_is_idempotent(self, conversation, customer, agent):
        MessageFactory(conversation=conversation, sender=customer)
        MessageService.mark_read(conversation.id, agent)

        result = MessageService.mark_read(conversation.id, agent)

        assert result.data == 0
        assert Message.read_by.through.objects.count() == 2

    def test_never_removes_other_readers(self, conversation, customer, agent):
        message = MessageFactory(conversation=conversation, sender=customer)

        MessageService.mark_read(conversation.id, agent)

        assert customer.id in message.read_by.values_list("id", flat=True)

    def test_non_participant_denied_without_mutation(self, conversation, customer, outsider):
        MessageFactory(conversation=conversation, sender=customer)

        result = MessageService.mark_read(conversation.id, outsider)

        assert result.error_code == "NOT_PARTICIPANT"
        assert Message.read_by.through.objects.count() == 1


class TestMessageServiceListMessages:
    def test_newest_first(self, conversation, customer):
        first = MessageFactory(conversation=conversation, sender=customer)
        second = MessageFactory(conversation=conversation, sender=customer)

        result = MessageService.list_messages(conversation.id, customer)

        assert list(result.data) == [second, first]

    def test_non_participant_denied(self, conversation, outsider):
        result = MessageService.list_messages(conversation.id, outsider)

        assert result.error_code == "NOT_PARTICIPANT"


# =============================================================================
# AttachmentService
# =============================================================================


class TestAttachmentServiceStore:
    def test_stores_upload_and_describes_it(self, settings, tmp_path):
        settings.MEDIA_ROOT = tmp_path
        upload = SimpleUploadedFile("photo.png", b"\x89PNG....", content_type="image/png")

        result = AttachmentService.store(upload)

        assert result.success
        assert result.data["name"] == "photo.png"
        assert result.data["type"] == "image/png"
        assert result.data["size"] == 8
        assert result.data["url"].endswith("_photo.png")
        assert len(list((tmp_path / MESSAGE_CONFIG.UPLOAD_DIR).iterdir())) == 1

    def test_rejects_oversized_upload(self, settings, tmp_path, mocker):
        settings.MEDIA_ROOT = tmp_path
        mocker.patch.object(MESSAGE_CONFIG, "MAX_ATTACHMENT_BYTES", 4)
        upload = SimpleUploadedFile("big.bin", b"12345")

        result = AttachmentService.store(upload)

        assert result.error_code == "INVALID_ARGUMENT"
        assert not (tmp_path / MESSAGE_CONFIG.UPLOAD_DIR).exists()

    def test_discard_deletes_stored_file(self, settings, tmp_path):
        settings.MEDIA_ROOT = tmp_path
        stored = AttachmentService.store(SimpleUploadedFile("x.txt", b"x")).data

        AttachmentService.discard(stored)

        assert list((tmp_path / MESSAGE_CONFIG.UPLOAD_DIR).iterdir()) == []
