# Overview: Stock ledger operations; the single source of truth for availability.

"""
Stock Ledger Invariants (authoritative)

- Product.current_stock >= 0 after every committed mutation.
- Stock only moves through conditional updates at the storage boundary
  (decrement only if the result stays >= 0). There is no read-modify-write in
  the service layer, so two concurrent sales cannot both pass a stale check.
- A multi-line deduction is all-or-nothing.
- Every manual change appends an InventoryAdjustment in the same unit of work.
  Adjustments are append-only.

Adjustment kinds:
- add:        delta = +quantity
- deduct:     delta = -quantity
- correction: quantity is the counted level; delta = counted - on hand
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Mapping, Optional

from ..errors import InvalidAdjustment, OutOfStock, ProductNotFound, ValidationError
from ..models import InventoryAdjustment, Product
from ..models.inventory import (
    ADJUSTMENT_ADD,
    ADJUSTMENT_CORRECTION,
    ADJUSTMENT_DEDUCT,
    ADJUSTMENT_KINDS,
)
from ..time_utils import utcnow
from ..validation import coerce_int, optional_text, require_choice, require_id, require_quantity
from .concurrency import run_with_retry

DEFAULT_HISTORY_DAYS = 30
MAX_HISTORY_DAYS = 3650


class StockLedger:

    def __init__(self, store, *, clock=utcnow):
        self.store = store
        self.clock = clock

    def deduct(self, quantities: Mapping[int, int]) -> None:
        """
        Deduct every {product_id: quantity} or nothing.

        Runs inside the caller's unit of work (order creation, settlement).

        Raises:
            OutOfStock: one or more products would go negative; details["items"]
                lists each with requested_quantity and on_hand
        """
        if not quantities:
            return
        shortfalls = self.store.deduct_stock(dict(quantities))
        if shortfalls:
            raise OutOfStock("Insufficient stock", details={"items": shortfalls})

    def adjust(
        self,
        product_id: Any,
        kind: Any,
        quantity: Any,
        reason: Any = None,
        operator_id: Optional[int] = None,
    ) -> InventoryAdjustment:
        """
        Apply a manual stock change and record it.

        Returns the InventoryAdjustment (carries previous_stock/new_stock).

        Raises:
            ValidationError: unknown kind or bad quantity
            ProductNotFound: product does not exist
            InvalidAdjustment: the result would be negative
        """
        product_id = require_id(product_id, "product_id")
        kind = require_choice(kind, "kind", ADJUSTMENT_KINDS)
        minimum = 0 if kind == ADJUSTMENT_CORRECTION else 1
        quantity = require_quantity(quantity, "quantity", minimum=minimum)
        reason = optional_text(reason, "reason")

        def _op():
            with self.store.transaction():
                # Correction is read-modify-write, so it needs the product's exclusive scope
                product = self.store.get_product(product_id, for_update=(kind == ADJUSTMENT_CORRECTION))
                if not product:
                    raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})

                if kind == ADJUSTMENT_ADD:
                    delta = quantity
                elif kind == ADJUSTMENT_DEDUCT:
                    delta = -quantity
                else:
                    delta = quantity - product.current_stock

                new_stock = self.store.change_stock(product_id, delta)
                if new_stock is None:
                    raise InvalidAdjustment(
                        "Adjustment would result in negative stock",
                        details={
                            "product_id": product_id,
                            "on_hand": product.current_stock,
                            "quantity_delta": delta,
                        },
                    )

                adjustment = InventoryAdjustment(
                    product_id=product_id,
                    kind=kind,
                    quantity_delta=delta,
                    previous_stock=new_stock - delta,
                    new_stock=new_stock,
                    reason=reason,
                    operator_id=operator_id,
                    created_at=self.clock(),
                )
                return self.store.add_adjustment(adjustment)

        return run_with_retry(_op)

    def low_stock(self) -> list[Product]:
        """Products at or below their threshold, largest shortfall first."""
        with self.store.transaction():
            return self.store.low_stock_products()

    def adjustment_history(self, product_id: Any = None, days: Any = DEFAULT_HISTORY_DAYS) -> list[InventoryAdjustment]:
        if product_id is not None:
            product_id = require_id(product_id, "product_id")
        days = coerce_int(days, "days")
        if days < 1:
            raise ValidationError("days must be at least 1", details={"field": "days", "value": days})
        if days > MAX_HISTORY_DAYS:
            raise ValidationError(
                f"days must not exceed {MAX_HISTORY_DAYS}",
                details={"field": "days", "value": days},
            )

        since = self.clock() - timedelta(days=days)
        with self.store.transaction():
            return self.store.list_adjustments(product_id=product_id, since=since)
