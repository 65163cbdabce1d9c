# Overview: Product catalog maintenance (create, update, list).

"""
Catalog Service

Products carry their own quantity on hand, but the catalog never edits it
directly after creation: stock only changes through the Stock Ledger (sales,
payments, adjustments). Opening stock is recorded as an "add" adjustment so
every unit on hand is traceable.
"""

from __future__ import annotations

from typing import Any, Optional

from ..errors import ProductNotFound, ValidationError
from ..models import InventoryAdjustment, Product
from ..models.inventory import ADJUSTMENT_ADD, PRODUCT_CATEGORIES
from ..time_utils import utcnow
from ..validation import (
    optional_text,
    require_cents,
    require_choice,
    require_id,
    require_quantity,
    require_text,
)
from .concurrency import run_with_retry

PRODUCT_MUTABLE_FIELDS = {"name", "description", "category", "price_cents", "low_stock_threshold", "unit"}


def _clean_field(field: str, value: Any) -> Any:
    if field == "name":
        return require_text(value, "name")
    if field == "description":
        return optional_text(value, "description", max_length=2000)
    if field == "category":
        return require_choice(value, "category", PRODUCT_CATEGORIES)
    if field == "price_cents":
        return require_cents(value, "price_cents")
    if field == "low_stock_threshold":
        return require_quantity(value, "low_stock_threshold", minimum=0)
    return require_text(value, "unit", max_length=32)


class Catalog:

    def __init__(self, store, *, clock=utcnow, default_low_stock_threshold: int = 10):
        self.store = store
        self.clock = clock
        self.default_low_stock_threshold = default_low_stock_threshold

    def create_product(
        self,
        name: Any,
        category: Any,
        price_cents: Any,
        current_stock: Any = 0,
        low_stock_threshold: Any = None,
        unit: Any = "pieces",
        description: Any = None,
        operator_id: Optional[int] = None,
    ) -> Product:
        name = require_text(name, "name")
        category = require_choice(category, "category", PRODUCT_CATEGORIES)
        price_cents = require_cents(price_cents, "price_cents")
        current_stock = require_quantity(current_stock, "current_stock", minimum=0)
        if low_stock_threshold is None:
            low_stock_threshold = self.default_low_stock_threshold
        low_stock_threshold = require_quantity(low_stock_threshold, "low_stock_threshold", minimum=0)
        unit = require_text(unit, "unit", max_length=32)
        description = optional_text(description, "description", max_length=2000)

        def _op():
            with self.store.transaction():
                now = self.clock()
                product = self.store.add_product(Product(
                    name=name,
                    description=description,
                    category=category,
                    price_cents=price_cents,
                    current_stock=current_stock,
                    low_stock_threshold=low_stock_threshold,
                    unit=unit,
                    created_at=now,
                    updated_at=now,
                ))
                if current_stock:
                    self.store.add_adjustment(InventoryAdjustment(
                        product_id=product.id,
                        kind=ADJUSTMENT_ADD,
                        quantity_delta=current_stock,
                        previous_stock=0,
                        new_stock=current_stock,
                        reason="Initial stock",
                        operator_id=operator_id,
                        created_at=now,
                    ))
                return product

        return run_with_retry(_op)

    def update_product(self, product_id: Any, patch: Any) -> Product:
        """
        Apply a partial update to product master data.

        current_stock is rejected here; use a stock adjustment instead.
        """
        product_id = require_id(product_id, "product_id")
        if not isinstance(patch, dict) or not patch:
            raise ValidationError("No fields to update", details={"field": "body"})
        if "current_stock" in patch:
            raise ValidationError(
                "current_stock is changed through stock adjustments",
                details={"field": "current_stock"},
            )
        unknown = sorted(set(patch) - PRODUCT_MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unknown product fields: {', '.join(unknown)}",
                details={"field": unknown[0], "allowed": sorted(PRODUCT_MUTABLE_FIELDS)},
            )
        cleaned = {field: _clean_field(field, value) for field, value in patch.items()}

        def _op():
            with self.store.transaction():
                product = self.store.get_product(product_id, for_update=True)
                if not product:
                    raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})
                for field, value in cleaned.items():
                    setattr(product, field, value)
                product.updated_at = self.clock()
                return product

        return run_with_retry(_op)

    def get_product(self, product_id: Any) -> Product:
        product_id = require_id(product_id, "product_id")
        with self.store.transaction():
            product = self.store.get_product(product_id)
            if not product:
                raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})
            return product

    def list_products(self, category: Any = None) -> list[Product]:
        categories = None
        if category is not None:
            categories = (require_choice(category, "category", PRODUCT_CATEGORIES),)
        with self.store.transaction():
            return self.store.list_products(categories=categories)
