"""
Error Hierarchy

Typed exceptions for every failure the catalog and order services can
report. Each error carries a machine-readable code and the HTTP status it
maps to, so the API layer needs a single exception handler.

    ValidationError            400  malformed or missing input, no store call made
    ReferentialIntegrityError  400  well-formed reference to a missing entity
    NotFoundError              404  target of a read/update/delete does not exist
    UnauthorizedError          401  credential missing or invalid
    ForbiddenError             403  credential lacks the required role
    ExternalStoreError         500  record store or asset store call failed
"""

from typing import Optional


class RestaurantError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str, http_status: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to the standard error response body."""
        return {
            "success": False,
            "error": self.code,
            "message": self.message,
        }


# =============================================================================
# CLIENT ERRORS (4xx)
# =============================================================================

class ValidationError(RestaurantError):
    """Request shape is invalid."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, "VALIDATION_ERROR", 400)
        self.field = field


class InvalidStatusError(ValidationError):
    """Order status label is not one of the known states."""

    def __init__(self, message: str = "Invalid status value"):
        super().__init__(message, field="status")
        self.code = "INVALID_STATUS"


class IllegalTransitionError(RestaurantError):
    """Order status change is not allowed from the current state."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change order status from {current} to {requested}",
            "ILLEGAL_TRANSITION",
            400,
        )
        self.current = current
        self.requested = requested


class ReferentialIntegrityError(RestaurantError):
    """A referenced entity id is well-formed but does not exist."""

    def __init__(self, message: str, reference: Optional[str] = None):
        super().__init__(message, "REFERENTIAL_INTEGRITY_ERROR", 400)
        self.reference = reference


class NotFoundError(RestaurantError):
    """Target entity does not exist."""

    def __init__(self, message: str):
        super().__init__(message, "NOT_FOUND", 404)


class UnauthorizedError(RestaurantError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED", 401)


class ForbiddenError(RestaurantError):
    def __init__(self, message: str = "Forbidden - Insufficient privileges"):
        super().__init__(message, "FORBIDDEN", 403)


# =============================================================================
# SERVER ERRORS (5xx)
# =============================================================================

class ExternalStoreError(RestaurantError):
    """A call to the record store or the asset store failed."""

    def __init__(self, message: str, code: str = "EXTERNAL_STORE_ERROR"):
        super().__init__(message, code, 500)


class RecordStoreError(ExternalStoreError):
    def __init__(self, message: str = "Record store operation failed"):
        super().__init__(message, "RECORD_STORE_ERROR")


class AssetStoreError(ExternalStoreError):
    def __init__(self, message: str = "Asset store operation failed"):
        super().__init__(message, "ASSET_STORE_ERROR")
