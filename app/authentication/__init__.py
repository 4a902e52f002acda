"""
Authentication application.

This app owns user identity and bearer credentials for both transports:

Key components:
    - User model: Email-based user with a display name, role and presence stamp
    - TokenService: Issues, verifies and atomically rotates JWT credentials
    - RenewingJWTAuthentication: DRF auth class with refresh-cookie renewal
    - TokenRenewalMiddleware: Writes renewed credentials onto the response

Usage:
    from authentication.models import User
    from authentication.services import TokenService
"""
