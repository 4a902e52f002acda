"""
Constants and configuration for the chat module.

This module centralizes configuration values for:
- Message content and attachment limits
- Page sizes for the REST list endpoints
- WebSocket event names and close codes

Import example:
    from chat.constants import MESSAGE_CONFIG, PAGINATION_CONFIG, WS_EVENTS
"""

from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    # Content limits
    MAX_BODY_LENGTH: Final[int] = 10000  # Characters

    # Multipart field names accepted for the single attachment, in priority order
    ATTACHMENT_FIELDS: Final[tuple] = ("file", "image", "attachment")

    # Storage prefix for uploaded attachments (under MEDIA_ROOT)
    UPLOAD_DIR: Final[str] = "chat"

    MAX_ATTACHMENT_BYTES: Final[int] = 5 * 1024 * 1024  # 5 MB


# =============================================================================
# Pagination Configuration
# =============================================================================


class PAGINATION_CONFIG:
    """Page sizes for list endpoints (page/limit query parameters)."""

    CONVERSATIONS_DEFAULT_LIMIT: Final[int] = 20
    CONVERSATIONS_MAX_LIMIT: Final[int] = 50

    MESSAGES_DEFAULT_LIMIT: Final[int] = 30
    MESSAGES_MAX_LIMIT: Final[int] = 100


# =============================================================================
# WebSocket Protocol
# =============================================================================


class WS_EVENTS:
    """Frame `type` values on the live channel."""

    # Client → server
    JOIN_ROOM: Final[str] = "joinRoom"
    TYPING: Final[str] = "typing"
    SEND_MESSAGE: Final[str] = "sendMessage"
    MARK_READ: Final[str] = "markRead"

    # Server → client
    CONNECTED: Final[str] = "connected"
    JOINED: Final[str] = "joined"
    MESSAGE: Final[str] = "message"
    READ: Final[str] = "read"
    ERROR: Final[str] = "error"


class WS_CLOSE_CODES:
    """Application close codes (4000-4999 range is reserved for apps)."""

    UNAUTHENTICATED: Final[int] = 4001
