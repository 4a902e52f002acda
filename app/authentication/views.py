"""
Authentication views.

This module provides API views for:
- Signup and login (email/password, returns an access token)
- Credential refresh from the httpOnly refresh cookie
- Logout (revokes the refresh credential on record)
- Current user

URL structure (see urls.py):
    /api/v1/auth/signup/   - POST create account
    /api/v1/auth/login/    - POST log in
    /api/v1/auth/refresh/  - POST rotate refresh cookie, new access token
    /api/v1/auth/logout/   - POST revoke and clear cookie
    /api/v1/auth/me/       - GET current user

Related files:
    - serializers.py: Request/response serialization
    - services.py: AuthService, TokenService
    - middleware.py: Cookie helpers shared with transparent renewal

Note:
    The access token travels in the response body and the Authorization
    header; the refresh token only ever travels in the cookie.
"""

from django.conf import settings
from drf_spectacular.utils import OpenApiExample, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.middleware import clear_refresh_cookie, set_refresh_cookie
from authentication.serializers import (
    LoginSerializer,
    RefreshResponseSerializer,
    SignupSerializer,
    TokenResponseSerializer,
    UserSerializer,
)
from authentication.services import AuthService, TokenService
from core.responses import error_response


def _token_response(pair, status_code=status.HTTP_200_OK):
    response = Response(
        {"token": pair.access, "user": UserSerializer(pair.user).data},
        status=status_code,
    )
    set_refresh_cookie(response, pair.refresh)
    return response


class SignupView(APIView):
    """
    API view for account creation.

    POST: Create a user and log them in

    URL: /api/v1/auth/signup/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Sign up",
        description=(
            "Create an account with name, email, password and an optional role. "
            "The refresh token is set as an httpOnly cookie."
        ),
        tags=["Auth"],
        request=SignupSerializer,
        responses={
            201: TokenResponseSerializer,
            400: OpenApiResponse(description="Missing field or invalid role"),
            409: OpenApiResponse(
                description="Email already in use",
                examples=[
                    OpenApiExample(
                        "Email Exists",
                        value={"error": "Email already in use", "error_code": "EMAIL_EXISTS"},
                    ),
                ],
            ),
        },
    )
    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.signup(**serializer.validated_data)
        if not result.success:
            return error_response(result)

        return _token_response(result.data, status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    API view for email/password login.

    POST: Verify credentials and issue a new credential pair

    URL: /api/v1/auth/login/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Log in",
        description="Authenticate with email and password to receive an access token.",
        tags=["Auth"],
        request=LoginSerializer,
        responses={
            200: TokenResponseSerializer,
            401: OpenApiResponse(description="Invalid credentials"),
        },
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AuthService.login(**serializer.validated_data)
        if not result.success:
            return error_response(result)

        return _token_response(result.data)


class RefreshView(APIView):
    """
    API view for credential refresh.

    POST: Rotate the refresh cookie and return a new access token

    URL: /api/v1/auth/refresh/

    The refresh cookie is the only input. A cookie that is not the one on
    record (already rotated, or revoked by logout) is refused with
    INVALID_CREDENTIAL and the client must log in again.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Refresh access token",
        description="Exchange the refresh cookie for a new access token and a new refresh cookie.",
        tags=["Auth"],
        request=None,
        responses={
            200: RefreshResponseSerializer,
            401: OpenApiResponse(
                description="Missing, expired or superseded refresh token",
                examples=[
                    OpenApiExample(
                        "Invalid Credential",
                        value={"error": "Invalid refresh token", "error_code": "INVALID_CREDENTIAL"},
                    ),
                ],
            ),
        },
    )
    def post(self, request):
        result = TokenService.rotate(request.COOKIES.get(settings.REFRESH_COOKIE_NAME))
        if not result.success:
            response = error_response(result)
            clear_refresh_cookie(response)
            return response

        pair = result.data
        response = Response({"token": pair.access})
        set_refresh_cookie(response, pair.refresh)
        return response


class LogoutView(APIView):
    """
    API view for logout.

    POST: Revoke the refresh credential on record and clear the cookie

    URL: /api/v1/auth/logout/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Log out",
        description="Invalidate the current refresh token. Access tokens expire on their own.",
        tags=["Auth"],
        request=None,
        responses={200: OpenApiResponse(description="Logged out")},
    )
    def post(self, request):
        TokenService.revoke(request.user)
        response = Response({"success": True})
        clear_refresh_cookie(response)
        return response


class MeView(APIView):
    """
    API view for the current user.

    GET: Return id, name, email and role

    URL: /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get current user",
        tags=["Auth"],
        responses={200: UserSerializer},
    )
    def get(self, request):
        return Response(UserSerializer(request.user).data)
