"""
POS Error Taxonomy

Every failure the engine reports to a caller is a POSError subclass. Each
carries the HTTP status the API layer answers with and a machine-readable
error code. None of them are retried internally.

Version: 1.0.0
"""

from typing import Optional


class POSError(Exception):
    """Base class for user-visible engine failures."""

    status_code: int = 500
    error_code: str = "pos_error"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code

    def to_dict(self) -> dict:
        """Convert to the API error body."""
        return {
            "success": False,
            "error": self.message,
            "detail": self.error_code,
        }


class ValidationError(POSError):
    """Missing or malformed required fields."""
    status_code = 400
    error_code = "validation_error"


class DuplicateEmail(POSError):
    """Signup email already resolves to a restaurant."""
    status_code = 400
    error_code = "duplicate_email"


class InvalidCredentials(POSError):
    status_code = 401
    error_code = "invalid_credentials"


class PaymentRequired(POSError):
    status_code = 402
    error_code = "payment_required"


class NotFound(POSError):
    """Restaurant, table or order absent."""
    status_code = 404
    error_code = "not_found"


class Unauthorized(POSError):
    """Manager password mismatch."""
    status_code = 401
    error_code = "unauthorized"


class StoreUnavailable(POSError):
    """The key-value store could not serve the request."""
    status_code = 503
    error_code = "store_unavailable"


class LockTimeout(StoreUnavailable):
    """A restaurant writer lock could not be acquired in time."""
    error_code = "lock_timeout"


def require_fields(**fields) -> None:
    """Raise ValidationError naming every empty field."""
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
