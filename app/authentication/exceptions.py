"""
Authentication exceptions raised by RenewingJWTAuthentication.

Exception Hierarchy:
    AuthenticationError (BaseApplicationError + DRF AuthenticationFailed)
    └── InvalidCredentialError - Refresh credential is not the one on record

Both are DRF AuthenticationFailed, so APIView answers 401 with the
WWW-Authenticate header, and both are BaseApplicationError, so
core.responses.api_exception_handler gives them the {error, error_code}
body with the service's error code (UNAUTHENTICATED, TOKEN_EXPIRED,
INVALID_CREDENTIAL).

Usage:
    from authentication.exceptions import AuthenticationError

    raise AuthenticationError(result.error, error_code=result.error_code)
"""

from rest_framework.exceptions import AuthenticationFailed

from core.exceptions import BaseApplicationError


class AuthenticationError(BaseApplicationError, AuthenticationFailed):
    """
    Raised when a bearer credential is missing, malformed, expired, or
    resolves to no active user.

    No mutation is attempted after this error.
    """

    default_error_code = "UNAUTHENTICATED"


class InvalidCredentialError(AuthenticationError):
    """
    Raised when a refresh credential does not match the one on record.

    The client must log in again; callers never retry on this error.
    """

    default_error_code = "INVALID_CREDENTIAL"
