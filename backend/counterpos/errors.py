# Overview: Domain error taxonomy shared by services, storage and routes.

"""
Error taxonomy (authoritative)

- Validation errors (400): malformed or missing input, rejected before storage is touched.
- Not-found errors (404): referenced product/order/kiosk session is absent.
- State conflicts (409): expected business outcomes (out of stock, underpayment,
  order already settled). Never logged as system failures.
- Persistence errors (503): storage unavailable. Not retried by the core.

Every error carries a stable `code` and a `details` dict identifying the
offending field or id.
"""

from __future__ import annotations


class CounterPosError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    code = "error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "code": self.code, "details": self.details}


# =============================================================================
# VALIDATION (400)
# =============================================================================

class ValidationError(CounterPosError, ValueError):
    """400-level input problem."""
    status_code = 400
    code = "validation_error"


class EmptyCart(ValidationError):
    code = "empty_cart"


class InvalidDiscountReason(ValidationError):
    code = "invalid_discount_reason"


class ProductNotSellable(ValidationError):
    code = "product_not_sellable"


# =============================================================================
# NOT FOUND (404)
# =============================================================================

class NotFoundError(CounterPosError):
    status_code = 404
    code = "not_found"


class ProductNotFound(NotFoundError):
    code = "product_not_found"


class OrderNotFound(NotFoundError):
    code = "order_not_found"


class SessionNotFound(NotFoundError):
    """Kiosk session is missing, expired or already submitted."""
    code = "session_not_found"


# =============================================================================
# STATE CONFLICTS (409)
# =============================================================================

class StateConflictError(CounterPosError):
    status_code = 409
    code = "conflict"


class OutOfStock(StateConflictError):
    code = "out_of_stock"


class InsufficientPayment(StateConflictError):
    code = "insufficient_payment"


class InvalidAdjustment(StateConflictError):
    code = "invalid_adjustment"


class OrderNotPending(StateConflictError):
    code = "order_not_pending"


# =============================================================================
# PERSISTENCE (503)
# =============================================================================

class PersistenceError(CounterPosError):
    status_code = 503
    code = "persistence_error"


class StorageContention(PersistenceError):
    """Lock contention reported by the database; safe to retry the unit of work."""
    code = "storage_contention"
