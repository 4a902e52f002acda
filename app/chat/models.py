"""
Chat system models.

Models:
    Conversation: Container for messages between two or more participants
    Participant: A user's membership in a conversation, with their role at join time
    Message: A message with an optional single attachment and a reader set

Design Decisions:
    - The participant set is fixed at creation; there is no join/leave history
    - A participant's role is copied from the user when the conversation is
      created and does not follow later role changes
    - The reader set is a plain M2M (Message.read_by); marking read inserts
      rows into its through table, which only ever grows
    - Conversation.last_message/last_message_at are denormalized for list
      sorting and previews and are written together with each new message
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from authentication.models import UserRole
from core.models import BaseModel


class Conversation(BaseModel):
    """
    A conversation between two or more users.

    Fields:
        topic: Optional subject; part of the create-or-find identity
        product_id: Optional id of a linked external resource
        last_message_at: Timestamp of most recent activity (for sorting)
        last_message: Most recent message (for previews)

    Relationships:
        participants: Participant records, in insertion order
        members: Users participating (through Participant)
        messages: All Message records
    """

    topic = models.CharField(
        max_length=200,
        null=True,
        blank=True,
        help_text="Optional conversation topic",
    )

    product_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Identifier of a linked resource (e.g. a product), if any",
    )

    last_message_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Timestamp of most recent message (for sorting conversation lists)",
    )

    last_message = models.ForeignKey(
        "chat.Message",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Most recent message in this conversation",
    )

    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="chat.Participant",
        related_name="conversations",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = ["-last_message_at", "-id"]

    def __str__(self) -> str:
        """Return human-readable representation."""
        if self.topic:
            return f"Conversation {self.pk}: {self.topic}"
        return f"Conversation {self.pk}"


class Participant(BaseModel):
    """
    Tracks user participation in a conversation.

    Fields:
        conversation: Conversation this participation belongs to
        user: Participating user
        role: The user's role when they were added

    Constraints:
        - UniqueConstraint(conversation, user): a user appears once per conversation
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="participants",
        help_text="Conversation this participation belongs to",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="conversation_participations",
        help_text="User participating in the conversation",
    )

    role = models.CharField(
        max_length=16,
        choices=UserRole.choices,
        help_text="Participant role at the time they were added",
    )

    class Meta:
        db_table = "chat_participant"
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="unique_conversation_participant",
            ),
        ]
        indexes = [
            # User's conversations
            models.Index(fields=["user", "conversation"], name="chat_part_user_conv_idx"),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        return f"Participant: {self.user_id} in {self.conversation_id} ({self.role})"


class Message(BaseModel):
    """
    A message within a conversation.

    A message carries a body, a single attachment, or both. The attachment
    is described by url/name/type/size; the bytes themselves live in
    default_storage (REST uploads) or wherever the client's url points
    (live channel).

    Fields:
        conversation: Conversation this message belongs to
        sender: Participant who sent the message
        body: Message text (may be empty when an attachment is present)
        file_url, file_name, file_type, file_size: Attachment metadata
        read_by: Users who have read the message (sender included on write)
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )

    body = models.TextField(
        blank=True,
        default="",
        help_text="Message text (may be empty if an attachment is present)",
    )

    file_url = models.CharField(max_length=500, blank=True, default="")
    file_name = models.CharField(max_length=255, blank=True, default="")
    file_type = models.CharField(max_length=100, blank=True, default="")
    file_size = models.PositiveBigIntegerField(null=True, blank=True)

    read_by = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="read_messages",
        help_text="Users who have read this message",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            # Newest-first paging within a conversation
            models.Index(
                fields=["conversation", "-created_at"],
                name="chat_msg_conv_created_idx",
            ),
        ]

    def __str__(self) -> str:
        """Return human-readable representation."""
        preview = self.body[:50] + "..." if len(self.body) > 50 else self.body
        if self.has_attachment:
            preview = f"{preview} [{self.file_name or 'attachment'}]".strip()
        return f"User {self.sender_id}: {preview}"

    @property
    def has_attachment(self) -> bool:
        return bool(self.file_url)

    @property
    def file(self) -> dict | None:
        """Attachment as a {url, name, type, size} dict, or None."""
        if not self.has_attachment:
            return None
        return {
            "url": self.file_url,
            "name": self.file_name,
            "type": self.file_type,
            "size": self.file_size,
        }
