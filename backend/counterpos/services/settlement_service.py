# Overview: Settlement engine; takes payment and completes pending orders.

"""
Settlement Engine

Lifecycle: pending -> completed (terminal).

pay() is one unit of work. The order is held in its exclusive scope for the
whole of it, so two concurrent payments on one order serialize and the second
sees a completed order (OrderNotPending).

Order of checks (all fallible steps come before the first mutation):
1. order exists and is pending
2. amount paid covers the total after discount
3. kiosk orders: stock for every line is deducted, all-or-nothing
4. order is completed and folded into the daily aggregate
"""

from __future__ import annotations

from typing import Any

from ..errors import InsufficientPayment, OrderNotFound, OrderNotPending
from ..models import Order
from ..models.orders import CHANNEL_KIOSK, STATUS_COMPLETED
from ..time_utils import utcnow
from ..validation import require_cents, require_id
from .concurrency import run_with_retry


class SettlementEngine:

    def __init__(self, store, stock, reporting, *, clock=utcnow):
        self.store = store
        self.stock = stock
        self.reporting = reporting
        self.clock = clock

    def pay(self, order_id: Any, amount_paid_cents: Any) -> Order:
        """
        Settle a pending order.

        Raises:
            ValidationError: amount is not a non-negative integer of cents
            OrderNotFound: order does not exist
            OrderNotPending: order was already completed
            InsufficientPayment: amount is below the total after discount
            OutOfStock: kiosk order whose items are no longer on hand; the order
                stays pending and no stock moves
        """
        order_id = require_id(order_id, "order_id")
        amount = require_cents(amount_paid_cents, "amount_paid_cents")

        def _op():
            with self.store.transaction():
                order = self.store.get_order(order_id, for_update=True)
                if not order:
                    raise OrderNotFound(f"Order {order_id} not found", details={"order_id": order_id})
                if not order.is_pending:
                    raise OrderNotPending(
                        "Order has already been completed",
                        details={"order_id": order_id, "status": order.status},
                    )

                amount_due = order.total_after_discount_cents
                if amount < amount_due:
                    raise InsufficientPayment(
                        "Amount paid is less than the amount due",
                        details={
                            "order_id": order_id,
                            "amount_due_cents": amount_due,
                            "amount_paid_cents": amount,
                        },
                    )

                # pos orders already moved stock when they were created
                if order.channel == CHANNEL_KIOSK:
                    quantities: dict[int, int] = {}
                    for line in order.lines:
                        quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
                    self.stock.deduct(quantities)

                now = self.clock()
                order.status = STATUS_COMPLETED
                order.amount_paid_cents = amount
                order.change_cents = amount - amount_due
                order.completed_at = now
                order.updated_at = now

                self.reporting.fold_completed_order(order)
                return order

        return run_with_retry(_op)
