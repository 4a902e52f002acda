"""
Base exception class and error-code classification shared by every app.

This module provides:
- BaseApplicationError: exception carrying a machine-readable error code
- ERROR_CODE_STATUS / status_for_error_code: the one place an error code
  is turned into an HTTP status

It deliberately stays free of Django REST Framework imports. DRF loads the
authentication classes while rest_framework.views is being imported, and
those classes raise subclasses of BaseApplicationError, so this module must
be importable before DRF has finished loading. The DRF side (exception
handler, error responses) lives in core.responses.

Usage:
    from core.exceptions import BaseApplicationError

    class AuthenticationError(BaseApplicationError):
        default_error_code = "UNAUTHENTICATED"

Note:
    Services return ServiceResult for expected failures. These exceptions are
    for code paths where raising is the only option (DRF authentication
    classes).
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


# Error code → HTTP status classification shared by every view
ERROR_CODE_STATUS: dict[str, int] = {
    "INVALID_ARGUMENT": HTTPStatus.BAD_REQUEST,
    "VALIDATION_ERROR": HTTPStatus.BAD_REQUEST,
    "UNAUTHENTICATED": HTTPStatus.UNAUTHORIZED,
    "TOKEN_EXPIRED": HTTPStatus.UNAUTHORIZED,
    "INVALID_CREDENTIAL": HTTPStatus.UNAUTHORIZED,
    "NOT_PARTICIPANT": HTTPStatus.FORBIDDEN,
    "NOT_JOINED": HTTPStatus.FORBIDDEN,
    "PERMISSION_DENIED": HTTPStatus.FORBIDDEN,
    "NOT_FOUND": HTTPStatus.NOT_FOUND,
    "CONVERSATION_NOT_FOUND": HTTPStatus.NOT_FOUND,
    "EMAIL_EXISTS": HTTPStatus.CONFLICT,
    "SERVER_ERROR": HTTPStatus.INTERNAL_SERVER_ERROR,
}


def status_for_error_code(error_code: str | None) -> int:
    """Return the HTTP status for a service error code (400 when unknown)."""
    return int(ERROR_CODE_STATUS.get(error_code or "", HTTPStatus.BAD_REQUEST))


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
        status_code: HTTP status derived from error_code
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        self.status_code = status_for_error_code(self.error_code)
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Access token expired",
                "error_code": "TOKEN_EXPIRED"
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )
