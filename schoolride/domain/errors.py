"""
Error taxonomy shared by the engine and the API layer.

Every failure the engine reports is a ``RideError`` subclass so callers can
tell apart "fix your input" (validation), "not yours" (authorization),
"state moved on, refresh" (conflict) and "backend unavailable" (dependency).
The HTTP status and error code ride along so the API layer can render them
without a lookup table.
"""

from __future__ import annotations

from typing import Any, Optional


class RideError(Exception):
    """Base class for all engine failures."""

    status_code = 500
    error_code = "ERR_INTERNAL"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(RideError):
    status_code = 422
    error_code = "ERR_VALIDATION"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.field = field
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, details)


class InvalidOtpError(ValidationError):
    """Submitted OTP does not match the ride's code."""

    error_code = "ERR_INVALID_OTP"

    def __init__(self, message: str = "Invalid OTP"):
        super().__init__(message, field="otp")


class AuthorizationError(RideError):
    status_code = 403
    error_code = "ERR_FORBIDDEN"


class NotFoundError(RideError):
    status_code = 404
    error_code = "ERR_NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} {resource_id} not found"
        super().__init__(message, {"resource": resource, "id": resource_id})


class ConflictError(RideError):
    status_code = 409
    error_code = "ERR_CONFLICT"


class OtpLockedError(RideError):
    status_code = 429
    error_code = "ERR_OTP_LOCKED"


class DependencyError(RideError):
    status_code = 503
    error_code = "ERR_DEPENDENCY"


class DuplicateRecordError(ConflictError):
    """A unique constraint rejected the write."""

    error_code = "ERR_DUPLICATE"
