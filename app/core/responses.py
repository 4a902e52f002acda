"""
DRF response helpers: error bodies for failed service results and the
project-wide exception handler.

Every error leaving the REST API has the same body:

    {"error": "<message>", "error_code": "<CODE>", "errors": {...}?}

Usage:
    from core.responses import error_response

    result = MessageService.mark_read(conversation_id, request.user)
    if not result.success:
        return error_response(result)

Settings:
    REST_FRAMEWORK["EXCEPTION_HANDLER"] = "core.responses.api_exception_handler"
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError, status_for_error_code

if TYPE_CHECKING:
    from typing import Any

    from core.services import ServiceResult

logger = logging.getLogger(__name__)


def error_response(result: ServiceResult) -> Response:
    """
    Build the error Response for a failed ServiceResult.

    Status comes from the error code, so a view never picks a status by hand.
    """
    body: dict[str, Any] = {"error": result.error, "error_code": result.error_code}
    if result.errors:
        body["errors"] = result.errors
    return Response(body, status=status_for_error_code(result.error_code))


def api_exception_handler(exc, context):
    """
    DRF exception handler adding domain and persistence errors.

    - BaseApplicationError subclasses keep whatever DRF adds for them (the
      WWW-Authenticate header for authentication failures) and get the
      {error, error_code} body
    - DatabaseError (store unreachable, write conflict) is logged and returned
      as a generic server error without internals
    - Everything else is DRF's default handling
    """
    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception(
            f"Persistence failure in {view.__class__.__name__ if view else 'unknown view'}"
        )
        return Response(
            {"error": "Server error", "error_code": "SERVER_ERROR"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = exception_handler(exc, context)

    if isinstance(exc, BaseApplicationError):
        if response is None:
            response = Response(status=exc.status_code)
        response.data = exc.to_dict()

    return response
