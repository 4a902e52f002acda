"""
DRF authentication class for bearer access tokens.

RenewingJWTAuthentication verifies the Authorization: Bearer header through
TokenService.authenticate_access. When the access token has merely expired
and the refresh cookie is present, the credential pair is rotated in place
and the request proceeds as the refreshed user; TokenRenewalMiddleware then
hands the new credentials back to the client.
"""

from django.conf import settings
from rest_framework.authentication import BaseAuthentication, get_authorization_header

from authentication.exceptions import AuthenticationError, InvalidCredentialError
from authentication.services import TokenService


class RenewingJWTAuthentication(BaseAuthentication):
    """
    Bearer token authentication with transparent renewal.

    Returns None (letting other authenticators run) when no Bearer header is
    present. Any bearer header that fails verification is an error.
    """

    keyword = b"bearer"

    def authenticate(self, request):
        header = get_authorization_header(request).split()
        if not header or header[0].lower() != self.keyword:
            return None

        if len(header) != 2:
            raise AuthenticationError(
                "Invalid Authorization header", error_code="UNAUTHENTICATED"
            )

        try:
            raw = header[1].decode()
        except UnicodeError:
            raise AuthenticationError(
                "Invalid Authorization header", error_code="UNAUTHENTICATED"
            )

        result = TokenService.authenticate_access(raw)
        if result:
            return (result.data, raw)

        if result.error_code != "TOKEN_EXPIRED":
            raise AuthenticationError(result.error, error_code=result.error_code)

        raw_refresh = request.COOKIES.get(settings.REFRESH_COOKIE_NAME)
        if not raw_refresh:
            raise AuthenticationError(
                "Token expired, please login again", error_code="TOKEN_EXPIRED"
            )

        rotated = TokenService.rotate(raw_refresh)
        if not rotated:
            raise InvalidCredentialError(rotated.error)

        pair = rotated.data
        # Picked up by TokenRenewalMiddleware on the way out
        request._request.renewed_tokens = pair
        return (pair.user, pair.access)

    def authenticate_header(self, request):
        return 'Bearer realm="api"'
