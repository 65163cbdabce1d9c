# Overview: Flask-SQLAlchemy implementation of the repository contract.

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceError, StorageContention
from ..models import (
    DailyAggregate,
    InventoryAdjustment,
    KioskCartLine,
    KioskSession,
    Order,
    OrderSequence,
    Product,
)
from ..services.concurrency import lock_for_update
from .base import Repository

_CONTENTION_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
)


def _is_contention(exc: OperationalError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _CONTENTION_MARKERS)


class SqlAlchemyStore(Repository):
    """
    Repository over the Flask-SQLAlchemy scoped session.

    SQLite ignores SELECT ... FOR UPDATE, so for_update reads on SQLite first
    touch the row with an UPDATE. That takes the database write lock for the
    rest of the unit of work, which serializes competing writers.
    """

    def __init__(self, db):
        self.db = db

    @property
    def session(self):
        return self.db.session

    @contextmanager
    def transaction(self):
        session = self.session
        if session.info.get("counterpos_uow"):
            # Joined an outer unit of work; it owns commit/rollback
            yield
            return

        session.info["counterpos_uow"] = True
        try:
            yield
            session.commit()
        except OperationalError as exc:
            session.rollback()
            if _is_contention(exc):
                raise StorageContention("Storage is busy, retry the operation") from exc
            raise PersistenceError("Storage unavailable") from exc
        except (StaleDataError, IntegrityError) as exc:
            # Lost a race on a unique row (sequence, cart line, daily total)
            session.rollback()
            raise StorageContention("Concurrent update conflict, retry the operation") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise PersistenceError("Storage unavailable") from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            session.info.pop("counterpos_uow", None)

    def _is_sqlite(self) -> bool:
        return self.db.engine.dialect.name == "sqlite"

    def _locked(self, model, key):
        if self._is_sqlite():
            table = model.__table__
            self.session.execute(update(table).where(table.c.id == key).values(id=table.c.id))
        query = lock_for_update(self.session.query(model).filter_by(id=key))
        return query.populate_existing().first()

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    def add_product(self, product: Product) -> Product:
        self.session.add(product)
        self.session.flush()
        return product

    def get_product(self, product_id: int, *, for_update: bool = False) -> Optional[Product]:
        if for_update:
            return self._locked(Product, product_id)
        return self.session.query(Product).filter_by(id=product_id).first()

    def get_products(self, product_ids: Iterable[int]) -> dict[int, Product]:
        ids = set(product_ids)
        if not ids:
            return {}
        rows = self.session.query(Product).filter(Product.id.in_(ids)).all()
        return {p.id: p for p in rows}

    def list_products(self, *, categories=None, in_stock_only: bool = False) -> list[Product]:
        query = self.session.query(Product)
        if categories is not None:
            query = query.filter(Product.category.in_(list(categories)))
        if in_stock_only:
            query = query.filter(Product.current_stock > 0)
        return query.order_by(Product.category, Product.name, Product.id).all()

    def low_stock_products(self) -> list[Product]:
        return (
            self.session.query(Product)
            .filter(Product.current_stock <= Product.low_stock_threshold)
            .order_by((Product.low_stock_threshold - Product.current_stock).desc(), Product.id)
            .all()
        )

    # -------------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------------

    def change_stock(self, product_id: int, delta: int) -> Optional[int]:
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.current_stock + delta >= 0)
            .values(current_stock=Product.current_stock + delta)
            .execution_options(synchronize_session="fetch")
        )
        result = self.session.execute(stmt)
        if not result.rowcount:
            return None
        return self.session.query(Product.current_stock).filter_by(id=product_id).scalar()

    def deduct_stock(self, quantities: Mapping[int, int]) -> list[dict]:
        applied: list[tuple[int, int]] = []
        shortfalls: list[dict] = []

        # Fixed order keeps row locks acquired consistently across writers
        for product_id in sorted(quantities):
            qty = quantities[product_id]
            if self.change_stock(product_id, -qty) is None:
                on_hand = self.session.query(Product.current_stock).filter_by(id=product_id).scalar()
                shortfalls.append({
                    "product_id": product_id,
                    "requested_quantity": qty,
                    "on_hand": on_hand or 0,
                })
            else:
                applied.append((product_id, qty))

        if shortfalls:
            # Compensate inside the same transaction; row locks keep this invisible
            for product_id, qty in applied:
                self.change_stock(product_id, qty)
        return shortfalls

    def add_adjustment(self, adjustment: InventoryAdjustment) -> InventoryAdjustment:
        self.session.add(adjustment)
        self.session.flush()
        return adjustment

    def list_adjustments(self, *, product_id: Optional[int] = None, since: Optional[datetime] = None):
        query = self.session.query(InventoryAdjustment)
        if product_id is not None:
            query = query.filter(InventoryAdjustment.product_id == product_id)
        if since is not None:
            query = query.filter(InventoryAdjustment.created_at >= since)
        return query.order_by(InventoryAdjustment.created_at.desc(), InventoryAdjustment.id.desc()).all()

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def next_order_number(self, channel: str) -> int:
        stmt = (
            update(OrderSequence)
            .where(OrderSequence.channel == channel)
            .values(next_number=OrderSequence.next_number + 1)
            .execution_options(synchronize_session=False)
        )

        result = self.session.execute(stmt)
        if result.rowcount:
            current = (
                self.session.query(OrderSequence.next_number)
                .filter_by(channel=channel)
                .scalar()
            )
            return current - 1

        # First order on this channel; a concurrent insert surfaces as
        # IntegrityError and the whole unit of work is retried
        self.session.add(OrderSequence(channel=channel, next_number=2))
        self.session.flush()
        return 1

    def add_order(self, order: Order) -> Order:
        self.session.add(order)
        self.session.flush()
        return order

    def get_order(self, order_id: int, *, for_update: bool = False) -> Optional[Order]:
        if for_update:
            return self._locked(Order, order_id)
        return self.session.query(Order).filter_by(id=order_id).first()

    def list_orders(self, *, channel: Optional[str] = None, status: Optional[str] = None) -> list[Order]:
        query = self.session.query(Order)
        if channel is not None:
            query = query.filter(Order.channel == channel)
        if status is not None:
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    # -------------------------------------------------------------------------
    # Kiosk sessions
    # -------------------------------------------------------------------------

    def add_kiosk_session(self, session: KioskSession) -> KioskSession:
        self.session.add(session)
        self.session.flush()
        return session

    def get_kiosk_session(self, session_id: str, *, for_update: bool = False) -> Optional[KioskSession]:
        if for_update:
            return self._locked(KioskSession, session_id)
        return self.session.query(KioskSession).filter_by(id=session_id).first()

    def add_cart_line(self, session: KioskSession, line: KioskCartLine) -> KioskCartLine:
        session.lines.append(line)
        self.session.flush()
        return line

    def remove_cart_line(self, session: KioskSession, line: KioskCartLine) -> None:
        session.lines.remove(line)
        self.session.flush()

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def fold_daily(self, report_date: date, *, revenue_cents: int, discount_cents: int, items_sold: int) -> None:
        stmt = (
            update(DailyAggregate)
            .where(DailyAggregate.report_date == report_date)
            .values(
                transaction_count=DailyAggregate.transaction_count + 1,
                revenue_cents=DailyAggregate.revenue_cents + revenue_cents,
                discount_cents=DailyAggregate.discount_cents + discount_cents,
                items_sold=DailyAggregate.items_sold + items_sold,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount:
            return

        self.session.add(DailyAggregate(
            report_date=report_date,
            transaction_count=1,
            revenue_cents=revenue_cents,
            discount_cents=discount_cents,
            items_sold=items_sold,
        ))
        self.session.flush()

    def get_daily(self, report_date: date) -> Optional[DailyAggregate]:
        return (
            self.session.query(DailyAggregate)
            .filter_by(report_date=report_date)
            .populate_existing()
            .first()
        )
