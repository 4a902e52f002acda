"""
Serializers for chat API.

This module provides serializers for the chat system:
- MessageSerializer: the message record, shared by REST responses and
  WebSocket `message` events
- Conversation serializers (detail, list with unread count, create)
- Request serializers for sending messages

Design Decisions:
    - Field names are camelCase on the wire for both paths
    - The message record has exactly one shape; the relay serializes with
      the same class the views use
    - Read and write serializers are separate for clarity
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema_field
from rest_framework import serializers

from authentication.serializers import UserSerializer
from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation, Message, Participant


# =============================================================================
# Message Serializers
# =============================================================================


class AttachmentSerializer(serializers.Serializer):
    """Attachment metadata embedded in a message record."""

    url = serializers.CharField()
    name = serializers.CharField(allow_blank=True)
    type = serializers.CharField(allow_blank=True)
    size = serializers.IntegerField(allow_null=True)


class MessageSerializer(serializers.ModelSerializer):
    """
    The message record.

    Example:
        {"id": 1, "conversationId": 7, "senderId": 3,
         "sender": {"id": 3, "name": "Ada", "email": "...", "role": "agent"},
         "body": "hello", "file": null, "readBy": [3],
         "createdAt": "2026-10-19T10:00:00Z"}
    """

    conversationId = serializers.IntegerField(source="conversation_id", read_only=True)
    senderId = serializers.IntegerField(source="sender_id", read_only=True)
    sender = UserSerializer(read_only=True)
    file = serializers.SerializerMethodField()
    readBy = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "conversationId",
            "senderId",
            "sender",
            "body",
            "file",
            "readBy",
            "createdAt",
        ]
        read_only_fields = fields

    @extend_schema_field(AttachmentSerializer(allow_null=True))
    def get_file(self, obj):
        return obj.file

    @extend_schema_field(serializers.ListField(child=serializers.IntegerField()))
    def get_readBy(self, obj):
        """Reader ids, ascending. Uses the prefetch cache when present."""
        return sorted(user.id for user in obj.read_by.all())


class MessageCreateSerializer(serializers.Serializer):
    """
    Request body for POST conversations/{id}/messages/.

    The attachment is sent as a multipart file under one of
    MESSAGE_CONFIG.ATTACHMENT_FIELDS; this serializer covers the text part.
    """

    body = serializers.CharField(
        required=False,
        allow_blank=True,
        default="",
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_BODY_LENGTH,
    )
    file = serializers.FileField(required=False, help_text="Optional attachment (also accepted as image or attachment)")


# =============================================================================
# Conversation Serializers
# =============================================================================


class ParticipantSerializer(serializers.ModelSerializer):
    """Participant with user info and their role in this conversation."""

    user = UserSerializer(read_only=True)

    class Meta:
        model = Participant
        fields = ["user", "role"]
        read_only_fields = fields


class ConversationSerializer(serializers.ModelSerializer):
    """Conversation detail."""

    participants = ParticipantSerializer(many=True, read_only=True)
    productId = serializers.CharField(source="product_id", read_only=True, allow_null=True)
    lastMessageAt = serializers.DateTimeField(source="last_message_at", read_only=True)
    lastMessage = MessageSerializer(source="last_message", read_only=True, allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    updatedAt = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Conversation
        fields = [
            "id",
            "participants",
            "topic",
            "productId",
            "lastMessageAt",
            "lastMessage",
            "createdAt",
            "updatedAt",
        ]
        read_only_fields = fields


class ConversationListSerializer(ConversationSerializer):
    """
    Conversation list item.

    Expects the unread_count annotation from ConversationService.list_for_user().
    """

    unreadCount = serializers.IntegerField(source="unread_count", read_only=True)

    class Meta(ConversationSerializer.Meta):
        fields = ConversationSerializer.Meta.fields + ["unreadCount"]
        read_only_fields = fields


class ConversationCreateSerializer(serializers.Serializer):
    """Request body for POST conversations/."""

    participantIds = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
        help_text="Users to include besides the caller",
    )
    topic = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, max_length=200
    )
    productId = serializers.CharField(
        required=False, allow_null=True, allow_blank=True, max_length=64
    )


class MarkReadResponseSerializer(serializers.Serializer):
    """Response body for POST conversations/{id}/read/ (schema only)."""

    message = serializers.CharField()
    updatedCount = serializers.IntegerField()
