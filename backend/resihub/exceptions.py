"""
ResiHub Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the different error scenarios.
How:   Each exception class carries a user-facing message and an optional
       context dict. Global exception handlers (registered in main.py) map
       them to HTTP status codes and JSON bodies.
Who:   Raised by services, dependencies and middleware; caught by handlers.

Exception Hierarchy:
    ResiHubError (base)
    ├── ValidationError            → 400 Bad Request
    ├── MissingCredentialsError    → 400 Bad Request
    ├── InvalidCredentialsError    → 400 Bad Request
    ├── AuthenticationError        → 401 Unauthorized
    ├── RegistrationPendingError   → 403 Forbidden
    ├── PermissionDeniedError      → 403 Forbidden
    ├── NotFoundError              → 404 Not Found
    ├── RateLimitExceededError     → 429 Too Many Requests
    ├── FileStorageError           → 500 Internal Server Error
    └── DatabaseError              → 500 Internal Server Error

An unknown email and a wrong password produce the same status and message.
"""

from typing import Any, Dict, Optional


class ResiHubError(Exception):
    """
    Base exception for all ResiHub application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ResiHubError):
    """
    Raised when client input fails validation.

    When:    Bad image type or size, malformed coordinates, missing query params.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class MissingCredentialsError(ResiHubError):
    """Login request without an email or a password."""

    status_code = 400

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Email and password are required", context=context)


class InvalidCredentialsError(ResiHubError):
    """
    Raised when the email resolves to no identity or the password mismatches.

    HTTP:    400 Bad Request (same status and message for both causes)
    """

    status_code = 400

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Your Email or Password is incorrect", context=context)


class AuthenticationError(ResiHubError):
    """Missing, malformed or expired session token on a protected route."""

    status_code = 401

    def __init__(
        self,
        message: str = "Invalid token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RegistrationPendingError(ResiHubError):
    """
    Raised when a Resident or Manager logs in before being approved.

    When:    Credentials are correct but status is 'pending' or 'rejected'.
    HTTP:    403 Forbidden, and no token is issued.
    """

    status_code = 403

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Your registration request is pending or rejected",
            context=context,
        )


class PermissionDeniedError(ResiHubError):
    """Authenticated caller does not own the resource it tries to change."""

    status_code = 403

    def __init__(
        self,
        message: str = "You are not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ResiHubError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; the service layer converts
    that into this exception so handlers can answer 404.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)


class RateLimitExceededError(ResiHubError):
    """Client exceeded the per-IP request budget."""

    status_code = 429

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class FileStorageError(ResiHubError):
    """
    Raised when the object storage rejects an upload.

    HTTP:    500 Internal Server Error
    Recovery: none, the client may resubmit.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ResiHubError):
    """
    Raised when a database operation fails unexpectedly.

    When:    Central or tenant database unreachable, query failure, or stored
             data that cannot be interpreted (e.g. an unknown status value).
    HTTP:    500 Internal Server Error

    A failure while scanning one tenant aborts the whole login; the scan
    never skips a tenant and continues.
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
