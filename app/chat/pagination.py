"""
Pagination classes for chat API.

Lists are paged with plain page/limit query parameters:
- ConversationPagination: most recent activity first (default 20, max 50)
- MessagePagination: newest page first, items oldest to newest within the
  page (default 30, max 100)

Design Decisions:
    - Missing, non-numeric or non-positive values fall back to the defaults
      instead of failing the request
    - limit is capped at the class maximum
    - Response shape: {"items": [...], "page": 1, "limit": 20, "total": 57}
"""

from rest_framework.pagination import BasePagination
from rest_framework.response import Response

from chat.constants import PAGINATION_CONFIG


class PageLimitPagination(BasePagination):
    """
    Page/limit pagination over a pre-ordered queryset.

    Query parameters:
        page: 1-based page number
        limit: Items per page (capped at max_limit)
    """

    page_query_param = "page"
    limit_query_param = "limit"
    default_limit = 20
    max_limit = 50

    def paginate_queryset(self, queryset, request, view=None):
        self.page = self._positive_int(request.query_params.get(self.page_query_param), 1)
        self.limit = min(
            self._positive_int(request.query_params.get(self.limit_query_param), self.default_limit),
            self.max_limit,
        )
        self.total = queryset.count()

        offset = (self.page - 1) * self.limit
        return list(queryset[offset : offset + self.limit])

    def get_paginated_response(self, data):
        return Response(
            {
                "items": data,
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
            }
        )

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["items", "page", "limit", "total"],
            "properties": {
                "items": schema,
                "page": {"type": "integer", "example": 1},
                "limit": {"type": "integer", "example": self.default_limit},
                "total": {"type": "integer", "example": 57},
            },
        }

    def get_schema_operation_parameters(self, view):
        return [
            {
                "name": self.page_query_param,
                "required": False,
                "in": "query",
                "description": "1-based page number.",
                "schema": {"type": "integer", "minimum": 1},
            },
            {
                "name": self.limit_query_param,
                "required": False,
                "in": "query",
                "description": f"Items per page (max {self.max_limit}).",
                "schema": {"type": "integer", "minimum": 1, "maximum": self.max_limit},
            },
        ]

    @staticmethod
    def _positive_int(raw, default: int) -> int:
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return default
        return value if value > 0 else default


class ConversationPagination(PageLimitPagination):
    default_limit = PAGINATION_CONFIG.CONVERSATIONS_DEFAULT_LIMIT
    max_limit = PAGINATION_CONFIG.CONVERSATIONS_MAX_LIMIT


class MessagePagination(PageLimitPagination):
    """
    Pages over a newest-first queryset and reverses each page, so page 1 is
    the most recent messages, read top to bottom.
    """

    default_limit = PAGINATION_CONFIG.MESSAGES_DEFAULT_LIMIT
    max_limit = PAGINATION_CONFIG.MESSAGES_MAX_LIMIT

    def paginate_queryset(self, queryset, request, view=None):
        page = super().paginate_queryset(queryset, request, view)
        page.reverse()
        return page
