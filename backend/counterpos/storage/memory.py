# Overview: In-process repository used for isolated service tests.

from __future__ import annotations

import itertools
import threading
from contextlib import ExitStack, contextmanager
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from ..models import (
    DailyAggregate,
    InventoryAdjustment,
    KioskCartLine,
    KioskSession,
    Order,
    Product,
)
from ..services.concurrency import KeyedLocks
from ..time_utils import utcnow
from .base import Repository


class InMemoryStore(Repository):
    """
    Dict-backed stand-in for SqlAlchemyStore.

    Entities are transient model instances held by reference. Stock changes
    take per-product locks; for_update reads hold a per-row lock until the
    unit of work ends. Services order their writes so that every fallible step
    happens before the first mutation, which is what makes the lack of a real
    rollback safe here.
    """

    def __init__(self):
        self._guard = threading.RLock()
        self._local = threading.local()

        self._product_locks = KeyedLocks()
        self._order_locks = KeyedLocks()
        self._session_locks = KeyedLocks()

        self._products: dict[int, Product] = {}
        self._adjustments: list[InventoryAdjustment] = []
        self._orders: dict[int, Order] = {}
        self._sessions: dict[str, KioskSession] = {}
        self._daily: dict[date, DailyAggregate] = {}
        self._sequences: dict[str, int] = {}

        self._ids = {
            "product": itertools.count(1),
            "adjustment": itertools.count(1),
            "order": itertools.count(1),
            "order_line": itertools.count(1),
            "cart_line": itertools.count(1),
            "daily": itertools.count(1),
        }

    def _next_id(self, kind: str) -> int:
        with self._guard:
            return next(self._ids[kind])

    @contextmanager
    def transaction(self):
        if getattr(self._local, "stack", None) is not None:
            yield
            return

        with ExitStack() as stack:
            self._local.stack = stack
            try:
                yield
            finally:
                self._local.stack = None

    def _hold(self, locks: KeyedLocks, key) -> None:
        stack = getattr(self._local, "stack", None)
        if stack is not None:
            stack.enter_context(locks.hold(key))

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    def add_product(self, product: Product) -> Product:
        product.id = self._next_id("product")
        now = utcnow()
        product.created_at = product.created_at or now
        product.updated_at = product.updated_at or now
        with self._guard:
            self._products[product.id] = product
        return product

    def get_product(self, product_id: int, *, for_update: bool = False) -> Optional[Product]:
        if for_update:
            self._hold(self._product_locks, product_id)
        with self._guard:
            return self._products.get(product_id)

    def get_products(self, product_ids: Iterable[int]) -> dict[int, Product]:
        with self._guard:
            return {pid: self._products[pid] for pid in set(product_ids) if pid in self._products}

    def list_products(self, *, categories=None, in_stock_only: bool = False) -> list[Product]:
        wanted = set(categories) if categories is not None else None
        with self._guard:
            rows = [
                p for p in self._products.values()
                if (wanted is None or p.category in wanted)
                and (not in_stock_only or p.current_stock > 0)
            ]
        return sorted(rows, key=lambda p: (p.category, p.name, p.id))

    def low_stock_products(self) -> list[Product]:
        with self._guard:
            rows = [p for p in self._products.values() if p.current_stock <= p.low_stock_threshold]
        return sorted(rows, key=lambda p: (-(p.low_stock_threshold - p.current_stock), p.id))

    # -------------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------------

    def change_stock(self, product_id: int, delta: int) -> Optional[int]:
        with self._product_locks.hold(product_id):
            product = self._products.get(product_id)
            if product is None or product.current_stock + delta < 0:
                return None
            product.current_stock += delta
            product.updated_at = utcnow()
            return product.current_stock

    def deduct_stock(self, quantities: Mapping[int, int]) -> list[dict]:
        with self._product_locks.hold_many(quantities.keys()):
            shortfalls = []
            for product_id in sorted(quantities):
                product = self._products.get(product_id)
                on_hand = product.current_stock if product is not None else 0
                if on_hand < quantities[product_id]:
                    shortfalls.append({
                        "product_id": product_id,
                        "requested_quantity": quantities[product_id],
                        "on_hand": on_hand,
                    })
            if shortfalls:
                return shortfalls

            now = utcnow()
            for product_id, qty in quantities.items():
                product = self._products[product_id]
                product.current_stock -= qty
                product.updated_at = now
            return []

    def add_adjustment(self, adjustment: InventoryAdjustment) -> InventoryAdjustment:
        adjustment.id = self._next_id("adjustment")
        adjustment.created_at = adjustment.created_at or utcnow()
        with self._guard:
            adjustment.product = self._products.get(adjustment.product_id)
            self._adjustments.append(adjustment)
        return adjustment

    def list_adjustments(self, *, product_id: Optional[int] = None, since: Optional[datetime] = None):
        with self._guard:
            rows = [
                a for a in self._adjustments
                if (product_id is None or a.product_id == product_id)
                and (since is None or a.created_at >= since)
            ]
        return sorted(rows, key=lambda a: (a.created_at, a.id), reverse=True)

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def next_order_number(self, channel: str) -> int:
        with self._guard:
            number = self._sequences.get(channel, 1)
            self._sequences[channel] = number + 1
            return number

    def add_order(self, order: Order) -> Order:
        order.id = self._next_id("order")
        for line in order.lines:
            line.id = self._next_id("order_line")
            line.order_id = order.id
        now = utcnow()
        order.created_at = order.created_at or now
        order.updated_at = order.updated_at or now
        with self._guard:
            self._orders[order.id] = order
        return order

    def get_order(self, order_id: int, *, for_update: bool = False) -> Optional[Order]:
        if for_update:
            self._hold(self._order_locks, order_id)
        with self._guard:
            return self._orders.get(order_id)

    def list_orders(self, *, channel: Optional[str] = None, status: Optional[str] = None) -> list[Order]:
        with self._guard:
            rows = [
                o for o in self._orders.values()
                if (channel is None or o.channel == channel)
                and (status is None or o.status == status)
            ]
        return sorted(rows, key=lambda o: (o.created_at, o.id), reverse=True)

    # -------------------------------------------------------------------------
    # Kiosk sessions
    # -------------------------------------------------------------------------

    def add_kiosk_session(self, session: KioskSession) -> KioskSession:
        session.updated_at = session.updated_at or session.created_at
        with self._guard:
            self._sessions[session.id] = session
        return session

    def get_kiosk_session(self, session_id: str, *, for_update: bool = False) -> Optional[KioskSession]:
        if for_update:
            self._hold(self._session_locks, session_id)
        with self._guard:
            return self._sessions.get(session_id)

    def add_cart_line(self, session: KioskSession, line: KioskCartLine) -> KioskCartLine:
        line.id = self._next_id("cart_line")
        line.session_id = session.id
        line.created_at = line.created_at or utcnow()
        session.lines.append(line)
        return line

    def remove_cart_line(self, session: KioskSession, line: KioskCartLine) -> None:
        session.lines.remove(line)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def fold_daily(self, report_date: date, *, revenue_cents: int, discount_cents: int, items_sold: int) -> None:
        with self._guard:
            row = self._daily.get(report_date)
            if row is None:
                row = DailyAggregate(
                    id=self._next_id("daily"),
                    report_date=report_date,
                    transaction_count=0,
                    revenue_cents=0,
                    discount_cents=0,
                    items_sold=0,
                )
                self._daily[report_date] = row
            row.transaction_count += 1
            row.revenue_cents += revenue_cents
            row.discount_cents += discount_cents
            row.items_sold += items_sold
            row.updated_at = utcnow()

    def get_daily(self, report_date: date) -> Optional[DailyAggregate]:
        with self._guard:
            return self._daily.get(report_date)
