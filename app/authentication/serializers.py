"""
Serializers for authentication endpoints.

This module provides DRF serializers for:
- User (public shape shared with chat records: id, name, email, role)
- Signup and login request bodies
- Token responses

Related files:
    - models.py: User, UserRole
    - views.py: Views that use these serializers
    - services.py: AuthService / TokenService do the actual work

Security:
    - Password fields are write-only
"""

from rest_framework import serializers

from authentication.models import User, UserRole


class UserSerializer(serializers.ModelSerializer):
    """
    Public user shape.

    Also embedded as the sender of every chat message record, so changing
    these fields changes the live event payload too.
    """

    class Meta:
        model = User
        fields = ["id", "name", "email", "role"]
        read_only_fields = fields


class SignupSerializer(serializers.Serializer):
    """Request body for POST /api/v1/auth/signup/."""

    name = serializers.CharField(max_length=150, trim_whitespace=True)
    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        min_length=6,
        style={"input_type": "password"},
        help_text="Password must be at least 6 characters.",
    )
    role = serializers.ChoiceField(
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        required=False,
    )

    def validate_email(self, value):
        return value.lower().strip()


class LoginSerializer(serializers.Serializer):
    """Request body for POST /api/v1/auth/login/."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, style={"input_type": "password"})


class TokenResponseSerializer(serializers.Serializer):
    """Response body for signup and login (schema only)."""

    token = serializers.CharField(help_text="Access token for the Authorization header")
    user = UserSerializer()


class RefreshResponseSerializer(serializers.Serializer):
    """Response body for refresh (schema only)."""

    token = serializers.CharField()
