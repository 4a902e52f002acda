"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation management (participants inline)
- Message moderation
"""

from django.contrib import admin

from chat.models import Conversation, Message, Participant


class ParticipantInline(admin.TabularInline):
    """Inline display of participants in conversation admin."""

    model = Participant
    extra = 0
    raw_id_fields = ["user"]
    readonly_fields = ["created_at"]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = ["id", "topic", "product_id", "participant_count", "last_message_at", "created_at"]
    search_fields = ["topic", "product_id", "id"]
    readonly_fields = ["created_at", "updated_at", "last_message_at", "last_message"]
    inlines = [ParticipantInline]
    ordering = ["-last_message_at"]

    @admin.display(description="Participants")
    def participant_count(self, obj):
        return obj.participants.count()


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = ["id", "conversation", "sender", "body_preview", "file_name", "created_at"]
    list_filter = ["created_at"]
    search_fields = ["body", "sender__email", "file_name"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["conversation", "sender", "read_by"]
    ordering = ["-created_at"]

    @admin.display(description="Body")
    def body_preview(self, obj):
        if len(obj.body) > 50:
            return f"{obj.body[:50]}..."
        return obj.body
