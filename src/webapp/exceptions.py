"""
Custom exceptions for the courier portal web application.

Provides a hierarchy of exceptions for clean error handling in routes.
"""

from typing import Optional, Dict, Any


class AppException(Exception):
    """Base exception for application errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AppException):
    """Raised when input validation fails."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class PricingError(ValidationError):
    """Raised when a parcel cannot be priced."""

    error_code = "PRICING_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, details)


class UnknownRoleError(ValidationError):
    """Raised when a signup role is not offered."""

    error_code = "UNKNOWN_ROLE"

    def __init__(self, role: str):
        super().__init__(f"Unknown signup role: {role}", details={"role": role})


class NotFoundError(AppException):
    """Raised when a requested resource does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class ShipmentNotFoundError(NotFoundError):
    """Raised when no shipment matches a tracking id."""

    error_code = "SHIPMENT_NOT_FOUND"

    def __init__(self, tracking_id: str):
        super().__init__(
            f"No shipment found for tracking ID: {tracking_id}",
            details={"tracking_id": tracking_id},
        )


class StorageError(AppException):
    """Raised when the document store fails."""

    status_code = 502
    error_code = "STORAGE_ERROR"
