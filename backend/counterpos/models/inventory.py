from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

CATEGORY_BEVERAGE = "beverage"
CATEGORY_FOOD = "food"
CATEGORY_INGREDIENT = "ingredient"

PRODUCT_CATEGORIES = (CATEGORY_BEVERAGE, CATEGORY_FOOD, CATEGORY_INGREDIENT)

ADJUSTMENT_ADD = "add"
ADJUSTMENT_DEDUCT = "deduct"
ADJUSTMENT_CORRECTION = "correction"

ADJUSTMENT_KINDS = (ADJUSTMENT_ADD, ADJUSTMENT_DEDUCT, ADJUSTMENT_CORRECTION)


class Product(db.Model):
    """
    Product master data and quantity on hand.

    STOCK DESIGN DECISION:
    Product.current_stock is the CANONICAL quantity on hand. It is only ever
    changed through a conditional update (never below zero), so the counter
    itself is the stock ledger. InventoryAdjustment rows audit manual changes;
    sales are traceable through OrderLine.

    Products are never deleted once orders reference them.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(32), nullable=False, index=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)
    unit = db.Column(db.String(32), nullable=False, default="pieces")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "price_cents": self.price_cents,
            "current_stock": self.current_stock,
            "low_stock_threshold": self.low_stock_threshold,
            "unit": self.unit,
            "stock_status": "low" if self.is_low_stock else "ok",
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryAdjustment(db.Model):
    """
    Append-only audit record of a manual stock change.

    quantity_delta is signed: positive for add, negative for deduct,
    counted - previous for a correction.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "inventory_adjustments"
    __table_args__ = (
        db.Index("ix_inv_adjustments_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    kind = db.Column(db.String(16), nullable=False, index=True)
    quantity_delta = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    operator_id = db.Column(db.Integer, nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product is not None else None,
            "kind": self.kind,
            "quantity_delta": self.quantity_delta,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reason": self.reason,
            "operator_id": self.operator_id,
            "created_at": to_utc_z(self.created_at),
        }
