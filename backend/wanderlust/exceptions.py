"""
Wanderlust: Custom Exception Hierarchy
======================================

What:  Application-specific exceptions, each carrying an HTTP status and a
       user-facing message.
How:   Request-time errors propagate to the single error funnel
       (middleware/error_funnel.py), which renders them into the error view.
       Startup errors are caught by the entry point and end the process.

Exception Hierarchy:
    WanderlustError (base, 500 "Something went wrong")
    ├── ValidationError              → 400 Bad Request (schema rejected payload)
    ├── AuthenticationRequiredError  → 401 Unauthorized (not logged in)
    ├── ForbiddenError               → 403 Forbidden (not owner / not author)
    ├── NotFoundError                → 404 Not Found
    ├── FileStorageError             → 500 Internal Server Error
    └── DatabaseError                → 500 Internal Server Error

    StartupError (process-terminating, never reaches a client)
    ├── ConfigurationError
    ├── DatabaseConnectionError
    └── StartupOrderError

    MalformedIdentifierError (data layer; remapped to 400 by the funnel)

Security:
    `message` is safe to show to users. `context` is for server-side logs
    only and is never rendered.
"""

from typing import Any, Dict, Optional


class WanderlustError(Exception):
    """
    Base exception for errors raised while handling a request.

    Attributes:
        status_code: HTTP status the error funnel responds with
        message:     User-facing description
        context:     Additional debug info (logged, never rendered)
    """

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(WanderlustError):
    """
    Raised when a submitted form fails its schema.

    When:  Before any write, by the `validate_listing` / `validate_review`
           guards, or by the file service for rejected uploads.
    """

    status_code = 400
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationRequiredError(WanderlustError):
    """Raised by `require_user` when the request carries no identity."""

    status_code = 401
    default_message = "You must be logged in to do that!"


class ForbiddenError(WanderlustError):
    """Raised when an authenticated user does not own the resource."""

    status_code = 403
    default_message = "You do not have permission to do that!"


class NotFoundError(WanderlustError):
    """Unknown path, or a resource that no longer exists."""

    status_code = 404
    default_message = "Page Not Found!"


class FileStorageError(WanderlustError):
    """
    Raised when an uploaded image cannot be written or read back.

    The OS error goes to `context`; the client only sees the generic message.
    """

    default_message = "Failed to save uploaded image. Please try again."


class DatabaseError(WanderlustError):
    """A query failed unexpectedly. Details are logged, never rendered."""

    default_message = "A database error occurred. Please try again later."


class MalformedIdentifierError(ValueError):
    """
    Raised by the data layer when a resource identifier is not a valid UUID.

    Deliberately NOT a WanderlustError: its text mirrors a driver cast error
    and must not reach the client. The error funnel remaps it to a 400 with a
    fixed message.
    """

    def __init__(self, value: Any, model: str = "resource"):
        self.value = value
        self.model = model
        super().__init__(
            f'Cast to UUID failed for value "{value}" (type {type(value).__name__}) '
            f'at path "id" for model "{model}"'
        )


# ══════════════════════════════════════════════════════════════════════════
# Startup errors
# ══════════════════════════════════════════════════════════════════════════


class StartupError(Exception):
    """Base for failures that must stop the process before it serves traffic."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ConfigurationError(StartupError):
    """A mandatory setting is missing or invalid."""


class DatabaseConnectionError(StartupError):
    """The single shared database connection could not be established."""


class StartupOrderError(StartupError):
    """A startup stage ran before the stage it depends on completed."""
