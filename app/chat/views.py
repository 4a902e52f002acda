"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ConversationViewSet: List, create-or-find, delete, mark read
- MessageViewSet: History and sending (nested under conversation)

URL Structure:
    /api/v1/chat/conversations/                   GET, POST
    /api/v1/chat/conversations/{id}/              DELETE
    /api/v1/chat/conversations/{id}/read/         POST
    /api/v1/chat/conversations/{id}/messages/     GET, POST

Design Decisions:
    - All rules live in the service layer; views translate ServiceResult
      into responses with core.responses.error_response
    - Sends and mark-reads go through the DeliveryCoordinator, so sessions
      joined on the WebSocket see them exactly as if sent live
"""

from __future__ import annotations

from django.apps import apps
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiResponse, extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.responses import error_response

from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation
from chat.pagination import ConversationPagination, MessagePagination
from chat.serializers import (
    ConversationCreateSerializer,
    ConversationListSerializer,
    ConversationSerializer,
    MarkReadResponseSerializer,
    MessageCreateSerializer,
    MessageSerializer,
)
from chat.services import AttachmentService, ConversationService, MessageService


def get_coordinator():
    """Process-wide DeliveryCoordinator built by ChatConfig.ready()."""
    return apps.get_app_config("chat").coordinator


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        description="Conversations of the current user, most recent activity first, with unread counts.",
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="create_conversation",
        summary="Create or find conversation",
        description=(
            "Returns the existing conversation with the same participant set and "
            "topic (200), or creates a new one (201). The caller is always a participant."
        ),
        request=ConversationCreateSerializer,
        responses={
            200: ConversationSerializer,
            201: ConversationSerializer,
            400: OpenApiResponse(description="Fewer than 2 participants or unknown user ids"),
        },
        tags=["Chat - Conversations"],
    ),
    destroy=extend_schema(
        operation_id="delete_conversation",
        summary="Delete conversation",
        description="Deletes the conversation and its messages. Admins and agents only.",
        responses={
            204: None,
            403: OpenApiResponse(description="Role may not delete conversations"),
            404: OpenApiResponse(description="Conversation not found"),
        },
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(viewsets.GenericViewSet):
    """
    ViewSet for conversation operations.

    list:
        Paginated conversations with unreadCount and lastMessage.

    create:
        Create-or-find by participant set and topic.

    destroy:
        Delete a conversation (admin/agent role).

    read:
        Mark every message of the conversation read for the caller and
        notify the room.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = ConversationPagination
    serializer_class = ConversationListSerializer

    def get_queryset(self):
        return ConversationService.list_for_user(self.request.user)

    def list(self, request):
        page = self.paginate_queryset(self.get_queryset())
        serializer = ConversationListSerializer(page, many=True, context={"request": request})
        return self.get_paginated_response(serializer.data)

    def create(self, request):
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ConversationService.create_or_find(
            creator=request.user,
            participant_ids=data.get("participantIds", []),
            topic=data.get("topic"),
            product_id=data.get("productId"),
        )
        if not result.success:
            return error_response(result)

        conversation, created = result.data
        conversation = (
            Conversation.objects.select_related("last_message__sender")
            .prefetch_related("participants__user", "last_message__read_by")
            .get(pk=conversation.pk)
        )
        return Response(
            ConversationSerializer(conversation, context={"request": request}).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def destroy(self, request, pk=None):
        result = ConversationService.delete(pk, request.user)
        if not result.success:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="mark_conversation_read",
        summary="Mark conversation as read",
        request=None,
        responses={
            200: MarkReadResponseSerializer,
            403: OpenApiResponse(description="Not a participant"),
            404: OpenApiResponse(description="Conversation not found"),
        },
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        result = get_coordinator().mark_read_sync(pk, request.user)
        if not result.success:
            return error_response(result)

        return Response(
            {"message": "Marked as read", "updatedCount": result.data["updatedCount"]}
        )


@extend_schema_view(
    list=extend_schema(
        operation_id="list_messages",
        summary="List messages",
        description="Newest page first; items within a page run oldest to newest.",
        responses={
            200: MessageSerializer(many=True),
            403: OpenApiResponse(description="Not a participant"),
            404: OpenApiResponse(description="Conversation not found"),
        },
        tags=["Chat - Messages"],
    ),
    create=extend_schema(
        operation_id="send_message",
        summary="Send message",
        description=(
            "Send a text message with an optional attachment (multipart field "
            "file, image or attachment). Sessions joined to the conversation "
            "receive it as a live message event."
        ),
        request={
            "multipart/form-data": MessageCreateSerializer,
            "application/json": OpenApiTypes.OBJECT,
        },
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Empty message or attachment too large"),
            403: OpenApiResponse(description="Not a participant"),
            404: OpenApiResponse(description="Conversation not found"),
        },
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(viewsets.GenericViewSet):
    """
    ViewSet for messages of one conversation.

    list:
        Paginated message history.

    create:
        Send a message through the DeliveryCoordinator.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = MessagePagination
    serializer_class = MessageSerializer
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def list(self, request, conversation_pk=None):
        result = MessageService.list_messages(conversation_pk, request.user)
        if not result.success:
            return error_response(result)

        page = self.paginate_queryset(result.data)
        return self.get_paginated_response(MessageSerializer(page, many=True).data)

    def create(self, request, conversation_pk=None):
        membership = ConversationService.check_membership(conversation_pk, request.user.id)
        if not membership.success:
            return error_response(membership)

        attachment = request.data.get("file") if isinstance(request.data.get("file"), dict) else None
        upload = self._get_upload(request)
        body = request.data.get("body", "")

        # Nothing is stored for a message that would be refused anyway
        content = MessageService.validate_body(body, has_attachment=attachment is not None or upload is not None)
        if not content.success:
            return error_response(content)

        stored = None
        if upload is not None:
            stored = AttachmentService.store(upload)
            if not stored.success:
                return error_response(stored)
            attachment = stored.data

        written = False
        try:
            result = get_coordinator().send_message_sync(
                membership.data,
                request.user,
                body=body,
                file=attachment,
            )
            written = result.success
        finally:
            if stored is not None and not written:
                AttachmentService.discard(stored.data)
        if not result.success:
            return error_response(result)
        return Response(result.data, status=status.HTTP_201_CREATED)

    @staticmethod
    def _get_upload(request):
        for field_name in MESSAGE_CONFIG.ATTACHMENT_FIELDS:
            upload = request.FILES.get(field_name)
            if upload is not None:
                return upload
        return None
