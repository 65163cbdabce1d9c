from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class DailyAggregate(db.Model):
    """
    Running sales totals for one calendar date (UTC).

    Accumulate-only: every completed order is folded in exactly once, in the
    same unit of work that completes it.
    """
    __tablename__ = "daily_aggregates"
    __table_args__ = (
        db.UniqueConstraint("report_date", name="uq_daily_aggregates_report_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    report_date = db.Column(db.Date, nullable=False)

    transaction_count = db.Column(db.Integer, nullable=False, default=0)
    revenue_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    items_sold = db.Column(db.Integer, nullable=False, default=0)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def average_ticket_cents(self) -> int:
        if not self.transaction_count:
            return 0
        # nearest-cent rounding, half-up
        return (self.revenue_cents * 2 + self.transaction_count) // (2 * self.transaction_count)

    def to_dict(self) -> dict:
        return {
            "report_date": self.report_date.isoformat(),
            "transaction_count": self.transaction_count,
            "revenue_cents": self.revenue_cents,
            "discount_cents": self.discount_cents,
            "items_sold": self.items_sold,
            "average_ticket_cents": self.average_ticket_cents,
            "updated_at": to_utc_z(self.updated_at),
        }
