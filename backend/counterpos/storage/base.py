# Overview: Storage interface injected into every service component.

"""
Repository contract (authoritative)

- Every service operation runs inside transaction(). It commits on success and
  rolls back on any exception, so no operation partially commits.
- Entities are the ORM model classes from counterpos.models. Services mutate
  attributes of returned entities in place; the store persists them when the
  unit of work ends.
- for_update=True takes an exclusive scope on that row until the unit of work
  ends. Concurrent settlements on one order and concurrent cart edits on one
  kiosk session are serialized through it.
- change_stock/deduct_stock are the only ways stock moves. Both are atomic
  conditional updates: stock never goes below zero, and deduct_stock applies
  all lines or none.
"""

from __future__ import annotations

import abc
from datetime import date, datetime
from typing import ContextManager, Iterable, Mapping, Optional

from ..models import (
    DailyAggregate,
    InventoryAdjustment,
    KioskCartLine,
    KioskSession,
    Order,
    Product,
)


class Repository(abc.ABC):

    @abc.abstractmethod
    def transaction(self) -> ContextManager[None]:
        """Unit of work. Nested calls join the outer unit of work."""

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    def add_product(self, product: Product) -> Product:
        ...

    @abc.abstractmethod
    def get_product(self, product_id: int, *, for_update: bool = False) -> Optional[Product]:
        ...

    @abc.abstractmethod
    def get_products(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Products keyed by id; missing ids are simply absent."""

    @abc.abstractmethod
    def list_products(
        self,
        *,
        categories: Optional[Iterable[str]] = None,
        in_stock_only: bool = False,
    ) -> list[Product]:
        """Ordered by category, then name."""

    @abc.abstractmethod
    def low_stock_products(self) -> list[Product]:
        """current_stock <= low_stock_threshold, largest shortfall first."""

    # -------------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    def change_stock(self, product_id: int, delta: int) -> Optional[int]:
        """
        Apply a signed delta if the result stays >= 0.

        Returns the new quantity, or None when the change was refused.
        """

    @abc.abstractmethod
    def deduct_stock(self, quantities: Mapping[int, int]) -> list[dict]:
        """
        Deduct every {product_id: quantity} or nothing.

        Returns an empty list on success, otherwise one shortfall entry per
        product ({"product_id", "requested_quantity", "on_hand"}) and leaves
        every quantity unchanged.
        """

    @abc.abstractmethod
    def add_adjustment(self, adjustment: InventoryAdjustment) -> InventoryAdjustment:
        ...

    @abc.abstractmethod
    def list_adjustments(
        self,
        *,
        product_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[InventoryAdjustment]:
        """Newest first."""

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    def next_order_number(self, channel: str) -> int:
        """Atomically allocate the next sequence number for a channel (starts at 1)."""

    @abc.abstractmethod
    def add_order(self, order: Order) -> Order:
        ...

    @abc.abstractmethod
    def get_order(self, order_id: int, *, for_update: bool = False) -> Optional[Order]:
        ...

    @abc.abstractmethod
    def list_orders(self, *, channel: Optional[str] = None, status: Optional[str] = None) -> list[Order]:
        """Newest first."""

    # -------------------------------------------------------------------------
    # Kiosk sessions
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    def add_kiosk_session(self, session: KioskSession) -> KioskSession:
        ...

    @abc.abstractmethod
    def get_kiosk_session(self, session_id: str, *, for_update: bool = False) -> Optional[KioskSession]:
        ...

    @abc.abstractmethod
    def add_cart_line(self, session: KioskSession, line: KioskCartLine) -> KioskCartLine:
        ...

    @abc.abstractmethod
    def remove_cart_line(self, session: KioskSession, line: KioskCartLine) -> None:
        ...

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    @abc.abstractmethod
    def fold_daily(
        self,
        report_date: date,
        *,
        revenue_cents: int,
        discount_cents: int,
        items_sold: int,
    ) -> None:
        """Add one completed transaction to the running totals for a date."""

    @abc.abstractmethod
    def get_daily(self, report_date: date) -> Optional[DailyAggregate]:
        ...
