"""
Chat system service layer.

This module provides the business logic for the chat system, encapsulating
all store operations on conversations and messages. Both the REST views and
the WebSocket relay go through these services, so membership rules and error
codes are identical on the two paths.

Services:
    ConversationService: Create-or-find, membership checks, listing, deletion
    MessageService: Send, mark read, history
    AttachmentService: Persist uploaded files through default_storage

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Unexpected failures (DatabaseError) raise and are logged by the caller
    - Membership is read from the store on every call, never cached

Error codes:
    INVALID_ARGUMENT: Missing/malformed input, empty message without attachment
    CONVERSATION_NOT_FOUND: No conversation with that id
    NOT_PARTICIPANT: User is not in the conversation
    PERMISSION_DENIED: Role may not perform the operation

Usage:
    from chat.services import ConversationService, MessageService

    result = ConversationService.create_or_find(
        creator=user, participant_ids=[agent.id], topic="Order #12"
    )
    if result.success:
        conversation, created = result.data

    result = MessageService.send_message(conversation.id, user, body="Hello!")
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import TYPE_CHECKING

from django.core.files.storage import default_storage
from django.db.models import Count, IntegerField, OuterRef, Subquery
from django.db.models.functions import Coalesce
from django.utils import timezone

from authentication.models import User, UserRole
from core.services import BaseService, ServiceResult

from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation, Message, Participant

if TYPE_CHECKING:
    from typing import Any

    from django.core.files.uploadedfile import UploadedFile
    from django.db.models import QuerySet

logger = logging.getLogger(__name__)


def coerce_id(value: Any) -> int | None:
    """
    Parse a client-supplied primary key.

    Returns None for anything that is not a positive integer (or a string
    of one). Booleans are rejected even though they are ints.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


class ConversationService(BaseService):
    """
    Service for conversation operations.

    Methods:
        create_or_find: Return the conversation for a participant set and topic
        check_membership: Membership check used by the relay on every event
        list_for_user: User's conversations with unread counts
        delete: Delete a conversation and its messages (admin/agent only)
    """

    # Roles allowed to delete conversations
    DELETE_ROLES = (UserRole.ADMIN, UserRole.AGENT)

    # Role given to every participant other than the creator
    INVITED_ROLE = UserRole.AGENT

    @classmethod
    def create_or_find(
        cls,
        creator: User,
        participant_ids: list | None,
        topic: str | None = None,
        product_id: str | None = None,
    ) -> ServiceResult[tuple[Conversation, bool]]:
        """
        Create a conversation, or return the existing one for the same
        participant set and topic.

        The creator is always a participant and keeps their own role; every
        other participant joins as an agent.

        Returns:
            ServiceResult with (conversation, created)

        Error codes:
            INVALID_ARGUMENT: Fewer than 2 distinct participants, malformed
                or unknown participant ids
        """
        if participant_ids is None:
            participant_ids = []
        if not isinstance(participant_ids, (list, tuple)):
            return ServiceResult.failure(
                "participantIds must be a list",
                error_code="INVALID_ARGUMENT",
                errors={"participantIds": ["Must be a list of user ids."]},
            )

        wanted = [creator.id]
        for raw in participant_ids:
            user_id = coerce_id(raw)
            if user_id is None:
                return ServiceResult.failure(
                    f"Invalid participant id: {raw!r}",
                    error_code="INVALID_ARGUMENT",
                    errors={"participantIds": [f"Invalid user id: {raw!r}"]},
                )
            if user_id not in wanted:
                wanted.append(user_id)

        if len(wanted) < 2:
            return ServiceResult.failure(
                "At least 2 participants required",
                error_code="INVALID_ARGUMENT",
            )

        users = {u.id: u for u in User.objects.filter(id__in=wanted, is_active=True)}
        missing = [user_id for user_id in wanted if user_id not in users]
        if missing:
            return ServiceResult.failure(
                "Unknown participants",
                error_code="INVALID_ARGUMENT",
                errors={"participantIds": [f"Unknown user id: {m}" for m in missing]},
            )

        topic = topic.strip() if isinstance(topic, str) and topic.strip() else None
        product_id = str(product_id) if product_id not in (None, "") else None

        existing = cls._find_existing(set(wanted), topic)
        if existing is not None:
            return ServiceResult.success((existing, False))

        with cls.atomic():
            conversation = Conversation.objects.create(topic=topic, product_id=product_id)
            Participant.objects.bulk_create(
                [
                    Participant(
                        conversation=conversation,
                        user_id=user_id,
                        role=creator.role if user_id == creator.id else cls.INVITED_ROLE,
                    )
                    for user_id in wanted
                ]
            )

        cls.get_logger().info(
            f"User {creator.id} created conversation {conversation.id} "
            f"with {len(wanted)} participants"
        )
        return ServiceResult.success((conversation, True))

    @classmethod
    def _find_existing(cls, wanted: set[int], topic: str | None) -> Conversation | None:
        first = next(iter(wanted))
        candidates = Conversation.objects.filter(participants__user_id=first)
        if topic is None:
            candidates = candidates.filter(topic__isnull=True)
        else:
            candidates = candidates.filter(topic=topic)

        for conversation in candidates.prefetch_related("participants"):
            if {p.user_id for p in conversation.participants.all()} == wanted:
                return conversation
        return None

    @classmethod
    def check_membership(cls, conversation_id: Any, user_id: Any) -> ServiceResult[int]:
        """
        Check that a conversation exists and the user participates in it.

        Returns:
            ServiceResult with the conversation id as an int

        Error codes:
            INVALID_ARGUMENT: conversation id missing
            CONVERSATION_NOT_FOUND: no such conversation
            NOT_PARTICIPANT: user not in the conversation
        """
        if conversation_id in (None, ""):
            return ServiceResult.failure(
                "conversationId is required", error_code="INVALID_ARGUMENT"
            )

        cid = coerce_id(conversation_id)
        if cid is None or not Conversation.objects.filter(pk=cid).exists():
            return ServiceResult.failure(
                "Conversation not found", error_code="CONVERSATION_NOT_FOUND"
            )

        if not Participant.objects.filter(conversation_id=cid, user_id=user_id).exists():
            return ServiceResult.failure(
                "Not a participant", error_code="NOT_PARTICIPANT"
            )

        return ServiceResult.success(cid)

    @classmethod
    def list_for_user(cls, user: User) -> QuerySet[Conversation]:
        """
        Conversations the user participates in, most recent activity first.

        Each row is annotated with unread_count (messages the user is not in
        the reader set of) and has last_message, its sender and participants
        preloaded for serialization.
        """
        unread = (
            Message.objects.filter(conversation=OuterRef("pk"))
            .exclude(read_by=user)
            .order_by()
            .values("conversation")
            .annotate(count=Count("id"))
            .values("count")
        )
        return (
            Conversation.objects.filter(participants__user=user)
            .annotate(
                unread_count=Coalesce(
                    Subquery(unread, output_field=IntegerField()), 0
                )
            )
            .select_related("last_message", "last_message__sender")
            .prefetch_related("participants__user", "last_message__read_by")
            .order_by("-last_message_at", "-id")
        )

    @classmethod
    def delete(cls, conversation_id: Any, user: User) -> ServiceResult[None]:
        """
        Delete a conversation together with its messages.

        Error codes:
            PERMISSION_DENIED: user's role is not admin or agent
            CONVERSATION_NOT_FOUND: no such conversation
        """
        if user.role not in cls.DELETE_ROLES:
            return ServiceResult.failure(
                f"Forbidden: role '{user.role}' does not have access",
                error_code="PERMISSION_DENIED",
            )

        cid = coerce_id(conversation_id)
        conversation = Conversation.objects.filter(pk=cid).first() if cid else None
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found", error_code="CONVERSATION_NOT_FOUND"
            )

        with cls.atomic():
            Conversation.objects.filter(pk=cid).update(last_message=None)
            conversation.messages.all().delete()
            conversation.delete()

        cls.get_logger().info(f"User {user.id} deleted conversation {cid}")
        return ServiceResult.success(None)


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Persist a message and update conversation activity
        validate_body: Body checks shared with the upload endpoint
        mark_read: Add the user to the reader set of every unread message
        list_messages: Newest-first message queryset for a participant
    """

    @classmethod
    def send_message(
        cls,
        conversation_id: Any,
        sender: User,
        body: Any = "",
        file: dict | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a message to a conversation.

        The sender is added to the reader set, and the conversation's
        last_message/last_message_at are updated in the same transaction.

        Args:
            conversation_id: Target conversation
            sender: User sending the message (must be a participant)
            body: Message text (may be empty if file is given)
            file: Attachment dict {url, name, type, size}; url is required

        Error codes:
            INVALID_ARGUMENT: Empty body without attachment, body too long,
                malformed or oversized attachment
            CONVERSATION_NOT_FOUND, NOT_PARTICIPANT: see check_membership
        """
        membership = ConversationService.check_membership(conversation_id, sender.id)
        if not membership:
            return membership
        cid = membership.data

        attachment = cls._clean_attachment(file)
        if not attachment:
            return attachment

        content = cls.validate_body(body, has_attachment=attachment.data is not None)
        if not content:
            return content

        with cls.atomic():
            message = Message.objects.create(
                conversation_id=cid,
                sender=sender,
                body=content.data,
                **(attachment.data or {}),
            )
            message.read_by.add(sender)
            Conversation.objects.filter(pk=cid).update(
                last_message=message,
                last_message_at=message.created_at,
                updated_at=timezone.now(),
            )

        cls.get_logger().debug(
            f"User {sender.id} sent message {message.id} to conversation {cid}"
        )
        return ServiceResult.success(message)

    @classmethod
    def validate_body(cls, body: Any, has_attachment: bool) -> ServiceResult[str]:
        """
        Check a message body before anything is written.

        The body is returned as given; surrounding whitespace only matters
        for deciding whether it is empty.
        """
        body = "" if body is None else str(body)
        if len(body) > MESSAGE_CONFIG.MAX_BODY_LENGTH:
            return ServiceResult.failure(
                f"Message body exceeds {MESSAGE_CONFIG.MAX_BODY_LENGTH} characters",
                error_code="INVALID_ARGUMENT",
            )
        if not body.strip() and not has_attachment:
            return ServiceResult.failure(
                "Message must have a body or an attachment",
                error_code="INVALID_ARGUMENT",
            )
        return ServiceResult.success(body)

    @staticmethod
    def _clean_attachment(file: Any) -> ServiceResult[dict | None]:
        # Success with None: no attachment; success with dict: model field values
        if file in (None, "", {}):
            return ServiceResult.success(None)

        malformed = ServiceResult.failure(
            "Attachment must include a url",
            error_code="INVALID_ARGUMENT",
            errors={"file": ["Expected an object with url, name, type and size."]},
        )
        if not isinstance(file, dict):
            return malformed

        url = file.get("url")
        if not isinstance(url, str) or not url.strip():
            return malformed

        size = file.get("size")
        if size is not None:
            if isinstance(size, bool) or not isinstance(size, (int, str)):
                return malformed
            try:
                size = int(size)
            except ValueError:
                return malformed
            if size < 0:
                return malformed
            if size > MESSAGE_CONFIG.MAX_ATTACHMENT_BYTES:
                return ServiceResult.failure(
                    "Attachment too large",
                    error_code="INVALID_ARGUMENT",
                    errors={"file": [f"Max size is {MESSAGE_CONFIG.MAX_ATTACHMENT_BYTES} bytes."]},
                )

        return ServiceResult.success({
            "file_url": url.strip()[:500],
            "file_name": str(file.get("name") or "")[:255],
            "file_type": str(file.get("type") or "")[:100],
            "file_size": size,
        })

    @classmethod
    def mark_read(cls, conversation_id: Any, user: User) -> ServiceResult[int]:
        """
        Add the user to the reader set of every message they have not read.

        Inserting into the reader-set table with ignore_conflicts makes this
        an additive set union: repeated or concurrent calls never remove
        readers and never duplicate them.

        Returns:
            ServiceResult with the number of messages newly marked read
        """
        membership = ConversationService.check_membership(conversation_id, user.id)
        if not membership:
            return membership
        cid = membership.data

        unread_ids = list(
            Message.objects.filter(conversation_id=cid)
            .exclude(read_by=user)
            .values_list("id", flat=True)
        )
        if unread_ids:
            ReadBy = Message.read_by.through
            ReadBy.objects.bulk_create(
                [ReadBy(message_id=mid, user_id=user.id) for mid in unread_ids],
                ignore_conflicts=True,
            )

        cls.get_logger().debug(
            f"User {user.id} marked {len(unread_ids)} messages read in conversation {cid}"
        )
        return ServiceResult.success(len(unread_ids))

    @classmethod
    def list_messages(cls, conversation_id: Any, user: User) -> ServiceResult[QuerySet[Message]]:
        """
        Messages of a conversation, newest first, for a participant.

        Callers page through this and reverse each page for display.
        """
        membership = ConversationService.check_membership(conversation_id, user.id)
        if not membership:
            return membership

        queryset = (
            Message.objects.filter(conversation_id=membership.data)
            .select_related("sender")
            .prefetch_related("read_by")
            .order_by("-created_at", "-id")
        )
        return ServiceResult.success(queryset)


class AttachmentService(BaseService):
    """Stores uploaded attachments and describes them for MessageService."""

    @classmethod
    def store(cls, upload: UploadedFile) -> ServiceResult[dict]:
        """
        Save an upload to default_storage.

        Returns:
            ServiceResult with the {url, name, type, size} attachment dict,
            plus the storage path for discard()

        Error codes:
            INVALID_ARGUMENT: File exceeds MESSAGE_CONFIG.MAX_ATTACHMENT_BYTES
        """
        if upload.size > MESSAGE_CONFIG.MAX_ATTACHMENT_BYTES:
            return ServiceResult.failure(
                "Attachment too large",
                error_code="INVALID_ARGUMENT",
                errors={"file": [f"Max size is {MESSAGE_CONFIG.MAX_ATTACHMENT_BYTES} bytes."]},
            )

        original_name = os.path.basename(upload.name or "upload")
        path = default_storage.save(
            f"{MESSAGE_CONFIG.UPLOAD_DIR}/{uuid.uuid4().hex}_{original_name}", upload
        )

        cls.get_logger().debug(f"Stored attachment {path} ({upload.size} bytes)")
        return ServiceResult.success(
            {
                "url": default_storage.url(path),
                "name": original_name,
                "type": getattr(upload, "content_type", "") or "application/octet-stream",
                "size": upload.size,
                "path": path,
            }
        )

    @classmethod
    def discard(cls, attachment: dict) -> None:
        """Delete a stored attachment whose message was never written."""
        default_storage.delete(attachment["path"])
        cls.get_logger().debug(f"Discarded attachment {attachment['path']}")
