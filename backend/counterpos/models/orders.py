from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

CHANNEL_POS = "pos"
CHANNEL_KIOSK = "kiosk"

CHANNELS = (CHANNEL_POS, CHANNEL_KIOSK)

# Human-readable order number prefixes (e.g., "POS-000123")
CHANNEL_PREFIXES = {
    CHANNEL_POS: "POS",
    CHANNEL_KIOSK: "KIOSK",
}

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"


class Order(db.Model):
    """
    Order document (a counter or kiosk transaction).

    LIFECYCLE: pending -> completed (terminal). Orders are never deleted or reopened.

    TOTALS: total_after_discount_cents is derived from total_before_discount_cents
    and discount_cents through recompute_totals(); it is never assigned on its own.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        # Pending kiosk queue and reporting lookups
        db.Index("ix_orders_channel_status_created", "channel", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    order_number = db.Column(db.String(32), nullable=False)
    channel = db.Column(db.String(16), nullable=False, index=True)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    operator_id = db.Column(db.Integer, nullable=True, index=True)
    customer_name = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    # All amounts in cents
    total_before_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_reason = db.Column(db.String(32), nullable=True)
    total_after_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    lines = db.relationship(
        "OrderLine",
        back_populates="order",
        order_by="OrderLine.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def recompute_totals(self) -> None:
        """Derive both totals from the line snapshots and the current discount."""
        self.total_before_discount_cents = sum(line.subtotal_cents for line in self.lines)
        self.total_after_discount_cents = max(0, self.total_before_discount_cents - (self.discount_cents or 0))

    def set_discount(self, amount_cents: int, reason: str | None) -> None:
        """Replace any prior discount; discounts never stack."""
        self.discount_cents = amount_cents
        self.discount_reason = reason
        self.recompute_totals()

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "channel": self.channel,
            "status": self.status,
            "operator_id": self.operator_id,
            "customer_name": self.customer_name,
            "notes": self.notes,
            "total_before_discount_cents": self.total_before_discount_cents,
            "discount_cents": self.discount_cents,
            "discount_reason": self.discount_reason,
            "total_after_discount_cents": self.total_after_discount_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "change_cents": self.change_cents,
            "item_count": self.item_count,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    """Line item with the unit price captured when the order was created."""
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    # Snapshot price: later catalog price changes never touch this column
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    order = db.relationship("Order", back_populates="lines")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product is not None else None,
            "category": self.product.category if self.product is not None else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
            "note": self.note,
        }


class OrderSequence(db.Model):
    """
    Atomic per-channel order number sequences.

    WHY: "read last row, increment" races when two orders are created at once.
    """
    __tablename__ = "order_sequences"
    __table_args__ = (
        db.UniqueConstraint("channel", name="uq_order_sequences_channel"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    channel = db.Column(db.String(16), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "channel": self.channel,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
