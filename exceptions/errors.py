"""
Custom exception classes for the application.

Every error carries a code, message, HTTP status and details so routes
can return the standard error envelope.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "ORDER_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Store operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# STORE ERRORS
# ===================

class StoreUnavailableError(ExternalServiceError):
    """Persistent store cannot be reached or is disabled."""

    def __init__(self, backend: str, message: str):
        super().__init__(
            service="store",
            message=message,
            details={"backend": backend}
        )
        self.code = "STORE_UNAVAILABLE"


# ===================
# ORDER ERRORS
# ===================

class OrderNotFoundError(NotFoundError):
    """Order not present in the cache."""

    def __init__(self, order_number: str):
        super().__init__(
            resource="Order",
            identifier=order_number,
            code="ORDER_NOT_FOUND"
        )


class DeleteNotConfirmedError(ValidationError):
    """Bulk delete requested without operator confirmation."""

    def __init__(self, count: int):
        super().__init__(
            code="DELETE_NOT_CONFIRMED",
            message=f"Deleting {count} orders requires confirmation",
            details={"count": count}
        )


# ===================
# PREVIEW ERRORS
# ===================

class PreviewRenderError(AppError):
    """Preview renderer failed (502)."""

    def __init__(self, message: str, order_count: int):
        super().__init__(
            code="PREVIEW_RENDER_FAILED",
            message=f"Failed to build preview: {message}",
            status_code=502,
            details={"order_count": order_count}
        )


# ===================
# CUSTOM LABEL ERRORS
# ===================

class CustomLabelIndexError(NotFoundError):
    """Custom label index out of range."""

    def __init__(self, index: int):
        super().__init__(
            resource="Custom label",
            identifier=str(index),
            code="CUSTOM_LABEL_NOT_FOUND"
        )


class LastCustomLabelError(ValidationError):
    """At least one custom label entry must remain."""

    def __init__(self):
        super().__init__(
            code="CUSTOM_LABEL_LAST_ENTRY",
            message="At least one custom label is required"
        )
