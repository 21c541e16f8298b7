"""Domain errors raised by the service layer.

Endpoints don't catch these; the application-level handlers in app.main map
each class to its HTTP status and a ``{"message": ...}`` body.
"""
from typing import Dict, Optional


class OrderManagementError(Exception):
    """Base class for business rule failures."""
    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(OrderManagementError):
    """Referenced customer, product, order or delivery does not exist."""
    status_code = 404


class ConflictError(OrderManagementError):
    """Uniqueness or referential conflict (duplicate email, delivery already exists)."""
    status_code = 409


class InvalidStateError(OrderManagementError):
    """Operation not allowed for the record's current status."""
    status_code = 400


class InsufficientStockError(OrderManagementError):
    """Requested quantity exceeds available stock."""
    status_code = 400

    def __init__(self, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}",
            details={"available": available, "requested": requested},
        )
