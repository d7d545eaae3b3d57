"""
Error types raised by the stores and handlers.

Each error carries the HTTP status it maps to and a message that is safe to
return to clients. The FastAPI exception handler in ``user_api.app`` turns
them into ``{"error": message}`` bodies.
"""

from __future__ import annotations


class UserApiError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(UserApiError):
    """A required field is missing or malformed."""

    status_code = 400
    default_message = "Invalid request body"


class ConflictError(UserApiError):
    """The email is already used by another user."""

    status_code = 400
    default_message = "Email already exists"


class NotFoundError(UserApiError):
    status_code = 404
    default_message = "User not found"


class BackendError(UserApiError):
    """The storage backend failed (connectivity or query error)."""

    status_code = 500


class RouteNotFoundError(UserApiError):
    status_code = 404
    default_message = "API endpoint not found"
