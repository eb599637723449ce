"""
auth/errors.py -- Domain exceptions raised by the auth layer.

Each exception carries the HTTP status and taxonomy name it maps to, so
api/main.py can convert any AuthError into the standard error envelope with
a single exception handler. auth/ itself never imports fastapi for errors.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for authentication and onboarding failures."""

    status_code: int = 401
    error: str = "Unauthorized"
    message: str = "Authentication required"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingCredentials(AuthError):
    message = "Missing or invalid authorization header"


class TokenInvalid(AuthError):
    message = "Invalid or expired token"


class TokenExpired(AuthError):
    message = "Access token expired"


class InvalidCredentials(AuthError):
    message = "Invalid credentials"


class RefreshTokenInvalid(AuthError):
    message = "Invalid refresh token"


class RefreshTokenExpired(AuthError):
    message = "Refresh token has expired"


class IdentityTokenInvalid(AuthError):
    message = "Invalid or expired Google ID token"


class IdentityMissingEmail(AuthError):
    status_code = 400
    error = "BadRequest"
    message = "Google account email not available"


class OnboardingSessionInvalid(AuthError):
    message = "Invalid or expired onboarding session"


class HandleInvalid(AuthError):
    status_code = 400
    error = "BadRequest"
    message = "Username must be 1-50 characters: letters, numbers, and underscores only"


class InvalidColor(AuthError):
    status_code = 400
    error = "BadRequest"
    message = "Invalid avatar color. Please choose from the palette."


class HandleTaken(AuthError):
    status_code = 409
    error = "Conflict"
    message = "Username is already taken. Please choose another."
