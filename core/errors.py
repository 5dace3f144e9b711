"""
core/errors.py -- Typed application errors.

Stores, services and dependencies raise these; they never build HTTP
responses. The single translator in api/main.py maps each class to its
status code and the standard error envelope:

    {"error": {"code": "<code>", "message": "<message>"}}

Anything that is not an AppError becomes a generic 500 there.

Layer rule: core/ is the kernel. No imports from api/, auth/, audit/, todos/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all classified application failures."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed or missing input."""

    status_code = 400
    code = "validation_error"
    default_message = "Request validation failed."


class AuthenticationError(AppError):
    """Missing, invalid, expired, or already-rotated credential."""

    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required."


class AuthorizationError(AppError):
    """Authenticated, but the role does not permit the operation."""

    status_code = 403
    code = "forbidden"
    default_message = "Insufficient role for this operation."


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."
