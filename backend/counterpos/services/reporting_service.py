# Overview: Reporting feed; folds completed orders into per-date running totals.

from __future__ import annotations

from datetime import date
from typing import Optional

from ..models import DailyAggregate, Order
from ..time_utils import utcnow


class ReportingFeed:
    """
    Keeps DailyAggregate rows current.

    fold_completed_order() runs inside the settlement's unit of work, so an
    order is counted exactly when it becomes completed and never otherwise.
    """

    def __init__(self, store, *, clock=utcnow):
        self.store = store
        self.clock = clock

    def fold_completed_order(self, order: Order) -> None:
        completed_at = order.completed_at or self.clock()
        self.store.fold_daily(
            completed_at.date(),
            revenue_cents=order.total_after_discount_cents,
            discount_cents=order.discount_cents or 0,
            items_sold=order.item_count,
        )

    def daily(self, report_date: Optional[date] = None) -> DailyAggregate:
        """Aggregate for a date (today by default); zeros when nothing was sold."""
        report_date = report_date or self.clock().date()
        with self.store.transaction():
            row = self.store.get_daily(report_date)
            if row is not None:
                return row
        return DailyAggregate(
            report_date=report_date,
            transaction_count=0,
            revenue_cents=0,
            discount_cents=0,
            items_sold=0,
        )
