# Overview: Line pricing (price snapshots) and discount policy.

"""
Pricing & Discount Calculator

WHY: Order lines capture the product's price at the moment the order is
created. Later catalog price changes must never alter historical orders.

DISCOUNT POLICY:
- An explicit amount always wins.
- Otherwise the reason is looked up in a fixed percentage table applied to the
  total before discount (nearest cent, half-up).
- "manual" has no percentage and therefore requires an explicit amount.
- Applying a discount replaces any earlier one. Discounts never stack.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from ..errors import InvalidDiscountReason, OrderNotFound, OrderNotPending, ProductNotFound, ValidationError
from ..models import Order, OrderLine
from ..validation import optional_text, require_cents, require_id, require_quantity
from .concurrency import run_with_retry


# =============================================================================
# DISCOUNT REASONS (CONSTANTS)
# =============================================================================

DISCOUNT_SENIOR_CITIZEN = "senior_citizen"
DISCOUNT_PWD = "pwd"
DISCOUNT_STUDENT = "student"
DISCOUNT_MANUAL = "manual"

# Percentages in basis points (2000 = 20%)
DISCOUNT_RATES_BPS = {
    DISCOUNT_SENIOR_CITIZEN: 2000,
    DISCOUNT_PWD: 2000,
    DISCOUNT_STUDENT: 1000,
}

VALID_DISCOUNT_REASONS = [
    DISCOUNT_SENIOR_CITIZEN,
    DISCOUNT_PWD,
    DISCOUNT_STUDENT,
    DISCOUNT_MANUAL,
]


def percentage_of(total_cents: int, bps: int) -> int:
    """bps/10000 of total, rounded to the nearest cent (half-up)."""
    return (total_cents * bps + 5000) // 10000


def validate_discount(reason: Any, amount_cents: Any = None) -> Optional[int]:
    """
    Check a discount request before any storage access.

    Returns the cleaned explicit amount, or None when the percentage table applies.

    Raises:
        InvalidDiscountReason: reason is not one of VALID_DISCOUNT_REASONS
        ValidationError: bad explicit amount, or "manual" without one
    """
    if reason not in VALID_DISCOUNT_REASONS:
        raise InvalidDiscountReason(
            f"Invalid discount reason: {reason}. Must be one of {VALID_DISCOUNT_REASONS}",
            details={"field": "reason", "value": reason},
        )

    if amount_cents is not None:
        return require_cents(amount_cents, "amount_cents")

    if reason == DISCOUNT_MANUAL:
        raise ValidationError(
            "amount_cents is required for a manual discount",
            details={"field": "amount_cents", "reason": reason},
        )
    return None


def compute_discount(reason: Any, total_before_cents: int, amount_cents: Any = None) -> int:
    """Discount amount in cents: the explicit amount, else the reason's percentage."""
    amount = validate_discount(reason, amount_cents)
    if amount is not None:
        return amount
    return percentage_of(total_before_cents, DISCOUNT_RATES_BPS[reason])


def normalize_lines(lines: Any) -> list[dict]:
    """
    Validate requested lines and merge repeated products.

    A product listed twice becomes one line with the summed quantity, keeping
    the position of its first appearance. The first non-empty note wins.
    """
    if lines is None or (isinstance(lines, (list, tuple)) and not lines):
        return []
    if not isinstance(lines, (list, tuple)):
        raise ValidationError("lines must be a list", details={"field": "lines"})

    merged: dict[int, dict] = {}
    for index, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise ValidationError("each line must be an object", details={"field": f"lines[{index}]"})
        product_id = require_id(raw.get("product_id"), f"lines[{index}].product_id")
        quantity = require_quantity(raw.get("quantity"), f"lines[{index}].quantity")
        note = optional_text(raw.get("note"), f"lines[{index}].note")

        existing = merged.get(product_id)
        if existing is None:
            merged[product_id] = {"product_id": product_id, "quantity": quantity, "note": note}
        else:
            existing["quantity"] += quantity
            existing["note"] = existing["note"] or note
    return list(merged.values())


class PricingCalculator:
    """Turns requested lines into priced order lines and applies discounts to orders."""

    def __init__(self, store):
        self.store = store

    def price_lines(self, lines: Iterable[dict]) -> list[OrderLine]:
        """
        Snapshot current prices onto new OrderLine rows.

        Expects lines already passed through normalize_lines().

        Raises:
            ProductNotFound: any referenced product does not exist
        """
        lines = list(lines)
        products = self.store.get_products(line["product_id"] for line in lines)

        priced = []
        for line in lines:
            product = products.get(line["product_id"])
            if product is None:
                raise ProductNotFound(
                    f"Product {line['product_id']} not found",
                    details={"product_id": line["product_id"]},
                )
            priced.append(OrderLine(
                product_id=product.id,
                product=product,
                quantity=line["quantity"],
                unit_price_cents=product.price_cents,
                subtotal_cents=product.price_cents * line["quantity"],
                note=line.get("note"),
            ))
        return priced

    def apply_discount(self, order_id: int, reason: Any, amount_cents: Optional[Any] = None) -> Order:
        """
        Apply (or replace) the discount on a pending order.

        Raises:
            OrderNotFound, InvalidDiscountReason, ValidationError, OrderNotPending
        """
        order_id = require_id(order_id, "order_id")
        explicit_amount = validate_discount(reason, amount_cents)

        def _op():
            with self.store.transaction():
                order = self.store.get_order(order_id, for_update=True)
                if not order:
                    raise OrderNotFound(f"Order {order_id} not found", details={"order_id": order_id})
                if not order.is_pending:
                    raise OrderNotPending(
                        "Discounts can only be applied to pending orders",
                        details={"order_id": order_id, "status": order.status},
                    )

                discount = compute_discount(reason, order.total_before_discount_cents, explicit_amount)
                order.set_discount(discount, reason)
                return order

        return run_with_retry(_op)
