"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Store
    StoreUnavailableError,

    # Orders
    OrderNotFoundError,
    DeleteNotConfirmedError,

    # Preview
    PreviewRenderError,

    # Custom labels
    CustomLabelIndexError,
    LastCustomLabelError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Store
    "StoreUnavailableError",

    # Orders
    "OrderNotFoundError",
    "DeleteNotConfirmedError",

    # Preview
    "PreviewRenderError",

    # Custom labels
    "CustomLabelIndexError",
    "LastCustomLabelError",
]
