from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

SESSION_ACTIVE = "active"
SESSION_SUBMITTED = "submitted"


class KioskSession(db.Model):
    """
    Anonymous, time-limited kiosk ordering session.

    The session row only carries identity, status and expiry. Cart contents
    live in kiosk_cart_lines, one row per product, in insertion order.
    """
    __tablename__ = "kiosk_sessions"

    # Opaque, unguessable token
    id = db.Column(db.String(64), primary_key=True)
    status = db.Column(db.String(16), nullable=False, default=SESSION_ACTIVE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    submitted_order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    lines = db.relationship(
        "KioskCartLine",
        back_populates="session",
        order_by="KioskCartLine.id",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def is_expired(self, now) -> bool:
        return self.expires_at <= now

    def accepts_changes(self, now) -> bool:
        return self.status == SESSION_ACTIVE and not self.is_expired(now)

    def line_for(self, product_id: int):
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def to_dict(self) -> dict:
        return {
            "session_id": self.id,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
            "submitted_order_id": self.submitted_order_id,
        }


class KioskCartLine(db.Model):
    """One product selection in a kiosk cart."""
    __tablename__ = "kiosk_cart_lines"
    __table_args__ = (
        # Repeated additions of a product merge into a single line
        db.UniqueConstraint("session_id", "product_id", name="uq_kiosk_cart_lines_session_product"),
        db.CheckConstraint("quantity >= 1", name="ck_kiosk_cart_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), db.ForeignKey("kiosk_sessions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    session = db.relationship("KioskSession", back_populates="lines")
    product = db.relationship("Product")
