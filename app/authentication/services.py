"""
Authentication services.

This module provides the services behind every credential check:
- TokenService: issue, verify, rotate and revoke JWT credentials
- AuthService: signup, login and presence updates

Both the REST API (RenewingJWTAuthentication, auth views) and the WebSocket
handshake (chat.middleware.JWTAuthMiddleware) verify access tokens through
TokenService.authenticate_access, so the two paths agree on which tokens are
valid and which error code a bad token produces.

Related files:
    - models.py: User (refresh_token_jti, online_at)
    - authentication.py: DRF authentication class with transparent renewal
    - middleware.py: Writes renewed credentials onto the response

Security:
    - Only the jti of the current refresh token is stored on the user
    - Rotation locks the user row so the stored and issued jti never diverge
    - A refresh token that is not the one on record is refused, never retried
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.contrib.auth import authenticate
from django.utils import timezone
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from authentication.models import User, UserRole
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from typing import Any


@dataclass(frozen=True)
class TokenPair:
    """A freshly issued access/refresh pair and the user it belongs to."""

    access: str
    refresh: str
    user: User


class TokenService(BaseService):
    """
    JWT credential lifecycle.

    Access tokens are short-lived and never stored. Refresh tokens are
    long-lived; the jti of the single refresh token currently on record is
    kept on the user so that a rotated-away or revoked token stops working.

    Usage:
        pair = TokenService.issue_tokens(user)

        result = TokenService.authenticate_access(raw_access)
        if not result:
            ...  # result.error_code is UNAUTHENTICATED or TOKEN_EXPIRED

        result = TokenService.rotate(raw_refresh)
        if result:
            pair = result.data
    """

    @classmethod
    def issue_tokens(cls, user: User) -> TokenPair:
        """
        Issue a new access/refresh pair and record the refresh jti.

        Any refresh token issued earlier for this user stops being accepted
        by rotate().
        """
        with cls.atomic():
            locked = User.objects.select_for_update().get(pk=user.pk)
            pair = cls._issue_locked(locked)

        user.refresh_token_jti = locked.refresh_token_jti
        return TokenPair(access=pair.access, refresh=pair.refresh, user=user)

    @classmethod
    def authenticate_access(cls, raw: str | None) -> ServiceResult[User]:
        """
        Verify a bearer access token and resolve its user.

        Failure codes:
            UNAUTHENTICATED: missing, malformed, bad signature, wrong token
                type, unknown or inactive user
            TOKEN_EXPIRED: well-formed token past its expiry
        """
        if not raw:
            return ServiceResult.failure(
                "Authentication credentials were not provided",
                error_code="UNAUTHENTICATED",
            )

        try:
            token = AccessToken(raw)
        except TokenError:
            if cls._is_expired(raw):
                return ServiceResult.failure(
                    "Access token expired", error_code="TOKEN_EXPIRED"
                )
            return ServiceResult.failure(
                "Invalid access token", error_code="UNAUTHENTICATED"
            )

        user_id = token.get(api_settings.USER_ID_CLAIM)
        user = User.objects.filter(pk=user_id, is_active=True).first()
        if user is None:
            return ServiceResult.failure(
                "User not found or inactive", error_code="UNAUTHENTICATED"
            )
        return ServiceResult.success(user)

    @classmethod
    def rotate(cls, raw_refresh: str | None) -> ServiceResult[TokenPair]:
        """
        Exchange the refresh token on record for a new pair.

        Verification, the jti comparison and the write of the new jti happen
        in one transaction with the user row locked. A token that does not
        match the one on record yields INVALID_CREDENTIAL; the caller must
        send the user back to login.
        """
        if not raw_refresh:
            return ServiceResult.failure(
                "No refresh token", error_code="INVALID_CREDENTIAL"
            )

        try:
            presented = RefreshToken(raw_refresh)
        except TokenError:
            return ServiceResult.failure(
                "Refresh token invalid or expired", error_code="INVALID_CREDENTIAL"
            )

        user_id = presented.get(api_settings.USER_ID_CLAIM)
        jti = presented.get(api_settings.JTI_CLAIM)

        with cls.atomic():
            user = (
                User.objects.select_for_update()
                .filter(pk=user_id, is_active=True)
                .first()
            )
            if user is None or not user.refresh_token_jti or user.refresh_token_jti != jti:
                cls.get_logger().warning(
                    f"Refresh token rejected for user {user_id}: not the one on record"
                )
                return ServiceResult.failure(
                    "Invalid refresh token", error_code="INVALID_CREDENTIAL"
                )
            pair = cls._issue_locked(user)

        cls.get_logger().info(f"Rotated credentials for user {user.pk}")
        return ServiceResult.success(pair)

    @classmethod
    def revoke(cls, user: User) -> None:
        """Clear the refresh credential on record (logout)."""
        User.objects.filter(pk=user.pk).update(refresh_token_jti="")
        user.refresh_token_jti = ""
        cls.get_logger().info(f"Revoked refresh credential for user {user.pk}")

    @staticmethod
    def _issue_locked(user: User) -> TokenPair:
        # Caller holds the row lock inside a transaction.
        refresh = RefreshToken.for_user(user)
        user.refresh_token_jti = refresh[api_settings.JTI_CLAIM]
        user.save(update_fields=["refresh_token_jti", "updated_at"])
        return TokenPair(access=str(refresh.access_token), refresh=str(refresh), user=user)

    @staticmethod
    def _is_expired(raw: str) -> bool:
        try:
            token = AccessToken(raw, verify=False)
        except TokenError:
            return False
        try:
            token.check_exp()
        except TokenError:
            return True
        return False


class AuthService(BaseService):
    """
    Account operations used by the auth endpoints and the relay.

    Usage:
        result = AuthService.signup(
            email="ada@example.com", password="...", name="Ada", role="agent"
        )
        result = AuthService.login(email="ada@example.com", password="...")
        AuthService.touch_presence(user_id)
    """

    @classmethod
    def signup(
        cls,
        email: str | None,
        password: str | None,
        name: str | None,
        role: str = UserRole.CUSTOMER,
    ) -> ServiceResult[TokenPair]:
        """
        Create an account and issue its first credential pair.

        Failure codes:
            INVALID_ARGUMENT: missing field or unknown role
            EMAIL_EXISTS: another account already uses the email
        """
        validation = cls.validate_required(name=name, email=email, password=password)
        if validation is not None:
            return validation

        if role not in UserRole.values:
            return ServiceResult.failure(
                "Invalid role",
                error_code="INVALID_ARGUMENT",
                errors={"role": [f"Must be one of: {', '.join(UserRole.values)}"]},
            )

        email = email.strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            return ServiceResult.failure(
                "Email already in use", error_code="EMAIL_EXISTS"
            )

        with cls.atomic():
            user = User.objects.create_user(
                email=email, password=password, name=name.strip(), role=role
            )
            pair = TokenService.issue_tokens(user)

        cls.get_logger().info(f"New account {user.pk} ({user.role})")
        return ServiceResult.success(pair)

    @classmethod
    def login(cls, email: str | None, password: str | None) -> ServiceResult[TokenPair]:
        """
        Check email/password and issue a new credential pair.

        Unknown email and wrong password fail the same way.
        """
        validation = cls.validate_required(email=email, password=password)
        if validation is not None:
            return validation

        user = authenticate(username=email.strip().lower(), password=password)
        if user is None:
            return ServiceResult.failure(
                "Invalid credentials", error_code="UNAUTHENTICATED"
            )

        return ServiceResult.success(TokenService.issue_tokens(user))

    @classmethod
    def touch_presence(cls, user_id: Any) -> bool:
        """
        Stamp the user's online_at with the current time.

        Returns True when a row was updated.
        """
        updated = User.objects.filter(pk=user_id).update(online_at=timezone.now())
        return updated > 0
