"""
Auth error taxonomy.

Every exception carries the HTTP status and the stable error code that
api.errors turns into the error envelope. Messages for credential and token
failures are fixed strings so callers cannot tell an unknown account from a
wrong password.
"""
from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    status_code: int = 401
    code: str = "UNAUTHORIZED"
    default_message: str = "Authentication required"

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class InvalidToken(AuthError):
    code = "INVALID_TOKEN"
    default_message = "Invalid or expired token"


class TokenExpired(InvalidToken):
    code = "TOKEN_EXPIRED"
    default_message = "Token expired"


class MissingOrMalformedToken(AuthError):
    code = "MISSING_TOKEN"
    default_message = "Access denied. No token provided"


class SamePassword(AuthError):
    status_code = 400
    code = "SAME_PASSWORD"
    default_message = "New password must be different from current password"


class Forbidden(AuthError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to access this resource"


class EmailAlreadyRegistered(AuthError):
    status_code = 409
    code = "EMAIL_TAKEN"
    default_message = "User already exists with this email"


class ConfigurationError(AuthError):
    """The deployment is broken (e.g. a signing secret is missing)."""
    status_code = 500
    code = "CONFIGURATION_ERROR"
    default_message = "Server configuration error"


class AuthUnavailable(AuthError):
    """The credential store or the hasher failed underneath an auth operation."""
    status_code = 503
    code = "AUTH_UNAVAILABLE"
    default_message = "Authentication service temporarily unavailable"
