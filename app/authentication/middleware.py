"""
Response middleware for renewed credentials.

When RenewingJWTAuthentication rotates an expired access token mid-request,
it leaves the new TokenPair on the request. This middleware copies it onto
the response: the access token in the X-Access-Token header and the refresh
token in the httpOnly refresh cookie.
"""

import logging

from django.conf import settings

logger = logging.getLogger(__name__)


def set_refresh_cookie(response, refresh_token: str) -> None:
    """Store the refresh token in the httpOnly, SameSite=Strict cookie."""
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        refresh_token,
        max_age=int(settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"].total_seconds()),
        path=settings.REFRESH_COOKIE_PATH,
        secure=settings.REFRESH_COOKIE_SECURE,
        httponly=True,
        samesite="Strict",
    )


def clear_refresh_cookie(response) -> None:
    response.delete_cookie(
        settings.REFRESH_COOKIE_NAME,
        path=settings.REFRESH_COOKIE_PATH,
        samesite="Strict",
    )


class TokenRenewalMiddleware:
    """Attach credentials renewed during the request to the response."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        pair = getattr(request, "renewed_tokens", None)
        if pair is not None:
            response[settings.ACCESS_TOKEN_HEADER] = pair.access
            set_refresh_cookie(response, pair.refresh)
            logger.debug(f"Renewed credentials returned to user {pair.user.pk}")

        return response
