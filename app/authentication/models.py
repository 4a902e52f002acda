"""
Authentication models.

This module defines the User model shared by the REST API and the
WebSocket relay:
- Email is the login identifier
- name is the display name shown to other participants
- role is one of a fixed set and is copied onto conversation participants
- online_at is the best-effort presence stamp written by the relay
- refresh_token_jti identifies the single refresh credential on record

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: TokenService (issue/verify/rotate) and AuthService

Security:
    - User passwords hashed with Django's PBKDF2
    - Only the jti of the refresh token is stored, never the token itself
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """
    Role of a user across the chat system.

    ADMIN and AGENT are staff-side roles allowed to delete conversations.
    CUSTOMER, DESIGNER and MERCHANT are client-side roles.
    """

    ADMIN = "admin", "Admin"
    AGENT = "agent", "Agent"
    CUSTOMER = "customer", "Customer"
    DESIGNER = "designer", "Designer"
    MERCHANT = "merchant", "Merchant"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        name: Display name
        role: UserRole value (default CUSTOMER)
        online_at: Last time a live session connected or disconnected
        refresh_token_jti: jti of the refresh token currently on record
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    name = models.CharField(
        max_length=150,
        help_text="Display name shown to other participants",
    )

    role = models.CharField(
        max_length=16,
        choices=UserRole.choices,
        default=UserRole.CUSTOMER,
        db_index=True,
        help_text="Role of this user (copied onto conversation participants)",
    )

    online_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last presence update from the live channel",
    )

    refresh_token_jti = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Identifier of the refresh credential currently on record",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        """Return the user's email as string representation."""
        return self.email

    def get_full_name(self):
        """Return the display name, falling back to the email."""
        return self.name or self.email

    def get_short_name(self):
        """Return the display name or the email local part."""
        return self.name or self.email.split("@")[0]

    @property
    def is_staff_role(self) -> bool:
        """Check if the user holds a staff-side chat role (admin or agent)."""
        return self.role in (UserRole.ADMIN, UserRole.AGENT)
