# Overview: Order ledger; creates orders from finished carts and serves order lookups.

"""
Order Ledger

WHY: An order is the durable record of a transaction. It is created once
(pending) from a finished list of lines, with each line's price snapshotted at
that moment.

STOCK TIMING:
- pos orders are handed over at the counter immediately, so stock is deducted
  in the same unit of work that creates the order.
- kiosk orders only reserve items; stock moves when the counter takes payment
  (see settlement_service).
"""

from __future__ import annotations

from typing import Any, Optional

from ..errors import EmptyCart, OrderNotFound
from ..models import Order
from ..models.orders import CHANNEL_KIOSK, CHANNEL_POS, CHANNEL_PREFIXES, CHANNELS, STATUS_PENDING
from ..time_utils import utcnow
from ..validation import optional_text, require_choice, require_id
from .concurrency import run_with_retry
from .pricing_service import normalize_lines


class OrderLedger:

    def __init__(self, store, pricing, stock, *, clock=utcnow, order_number_pad: int = 6):
        self.store = store
        self.pricing = pricing
        self.stock = stock
        self.clock = clock
        self.order_number_pad = order_number_pad

    def format_order_number(self, channel: str, number: int) -> str:
        return f"{CHANNEL_PREFIXES[channel]}-{number:0{self.order_number_pad}d}"

    def create_order(
        self,
        channel: Any,
        lines: Any,
        operator_id: Optional[int] = None,
        customer_name: Any = None,
        notes: Any = None,
    ) -> Order:
        """
        Create a pending order from a finished cart.

        Raises:
            ValidationError: bad channel, malformed lines
            EmptyCart: no lines
            ProductNotFound: a line references a missing product
            OutOfStock: pos order and stock cannot cover it (nothing is created)
        """
        channel = require_choice(channel, "channel", CHANNELS)
        normalized = normalize_lines(lines)
        if not normalized:
            raise EmptyCart("Order must contain at least one line", details={"field": "lines"})
        customer_name = optional_text(customer_name, "customer_name")
        notes = optional_text(notes, "notes", max_length=2000)
        if operator_id is not None:
            operator_id = require_id(operator_id, "operator_id")

        def _op():
            with self.store.transaction():
                return self._create_order_locked(
                    channel,
                    normalized,
                    operator_id=operator_id,
                    customer_name=customer_name,
                    notes=notes,
                )

        return run_with_retry(_op)

    def _create_order_locked(
        self,
        channel: str,
        lines: list[dict],
        *,
        operator_id: Optional[int] = None,
        customer_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        priced = self.pricing.price_lines(lines)

        if channel == CHANNEL_POS:
            quantities: dict[int, int] = {}
            for line in priced:
                quantities[line.product_id] = quantities.get(line.product_id, 0) + line.quantity
            self.stock.deduct(quantities)

        # Numbered last so a rejected order never consumes a number
        number = self.store.next_order_number(channel)
        now = self.clock()
        order = Order(
            order_number=self.format_order_number(channel, number),
            channel=channel,
            status=STATUS_PENDING,
            operator_id=operator_id,
            customer_name=customer_name,
            notes=notes,
            discount_cents=0,
            discount_reason=None,
            amount_paid_cents=0,
            change_cents=0,
            created_at=now,
            updated_at=now,
            lines=priced,
        )
        order.recompute_totals()
        return self.store.add_order(order)

    def get_order(self, order_id: Any) -> Order:
        order_id = require_id(order_id, "order_id")
        with self.store.transaction():
            order = self.store.get_order(order_id)
            if not order:
                raise OrderNotFound(f"Order {order_id} not found", details={"order_id": order_id})
            return order

    def list_pending_kiosk_orders(self) -> list[Order]:
        """Kiosk orders awaiting payment at the counter, newest first."""
        with self.store.transaction():
            return self.store.list_orders(channel=CHANNEL_KIOSK, status=STATUS_PENDING)
