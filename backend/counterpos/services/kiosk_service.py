# Overview: Kiosk cart store; anonymous self-order sessions with a 30 minute lifetime.

"""
Kiosk Cart Store

SESSION RULES:
- A session is identified by an opaque token and expires a fixed time after
  creation. Expiry is checked lazily whenever the session is touched.
- Only an active, unexpired session accepts cart changes. Missing, expired and
  submitted sessions all answer SessionNotFound to changes.
- Every mutation holds the session's exclusive scope for its unit of work, so
  concurrent requests against one cart are applied one at a time.
- The cart keeps one line per product. Adding a product again increases the
  quantity; a non-empty note on the new addition replaces the old note.
- Prices are not fixed in the cart. The cart view prices lines from the
  current catalog; the price snapshot happens when the cart is submitted.
"""

from __future__ import annotations

import secrets
from datetime import timedelta
from typing import Any, Iterable

from ..errors import EmptyCart, ProductNotFound, ProductNotSellable, SessionNotFound, ValidationError
from ..models import KioskCartLine, KioskSession, Order
from ..models.kiosk import SESSION_ACTIVE, SESSION_SUBMITTED
from ..models.orders import CHANNEL_KIOSK
from ..time_utils import to_utc_z, utcnow
from ..validation import MAX_QUANTITY, optional_text, require_id, require_quantity
from .concurrency import run_with_retry


class KioskCartStore:

    def __init__(
        self,
        store,
        orders,
        *,
        clock=utcnow,
        ttl_minutes: int = 30,
        sellable_categories: Iterable[str] = ("beverage", "food"),
        default_customer_name: str = "Kiosk Customer",
    ):
        self.store = store
        self.orders = orders
        self.clock = clock
        self.ttl = timedelta(minutes=ttl_minutes)
        self.sellable_categories = tuple(sellable_categories)
        self.default_customer_name = default_customer_name

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _session_for_change(self, session_id: str) -> KioskSession:
        session = self.store.get_kiosk_session(session_id, for_update=True)
        if not session or not session.accepts_changes(self.clock()):
            raise SessionNotFound("Kiosk session not found or expired", details={"session_id": session_id})
        return session

    def _cart_view(self, session: KioskSession) -> dict:
        lines = []
        total = 0
        for line in session.lines:
            product = line.product
            subtotal = product.price_cents * line.quantity
            total += subtotal
            lines.append({
                "product_id": line.product_id,
                "product_name": product.name,
                "category": product.category,
                "quantity": line.quantity,
                "unit_price_cents": product.price_cents,
                "subtotal_cents": subtotal,
                "note": line.note,
            })
        return {
            "session_id": session.id,
            "status": session.status,
            "expires_at": to_utc_z(session.expires_at),
            "submitted_order_id": session.submitted_order_id,
            "lines": lines,
            "total_cents": total,
            "item_count": len(lines),
            "unit_count": sum(line["quantity"] for line in lines),
        }

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create_session(self) -> KioskSession:
        now = self.clock()
        session = KioskSession(
            id=secrets.token_urlsafe(32),
            status=SESSION_ACTIVE,
            created_at=now,
            expires_at=now + self.ttl,
            updated_at=now,
        )

        def _op():
            with self.store.transaction():
                return self.store.add_kiosk_session(session)

        return run_with_retry(_op)

    def menu(self) -> dict:
        """Customer-facing products currently in stock, grouped by category."""
        with self.store.transaction():
            products = self.store.list_products(categories=self.sellable_categories, in_stock_only=True)
            grouped: dict[str, list[dict]] = {category: [] for category in self.sellable_categories}
            for product in products:
                grouped.setdefault(product.category, []).append({
                    "id": product.id,
                    "name": product.name,
                    "description": product.description,
                    "price_cents": product.price_cents,
                })
            return grouped

    def read_cart(self, session_id: str) -> dict:
        """Priced view of the cart. Submitted sessions stay readable until they expire."""
        with self.store.transaction():
            session = self.store.get_kiosk_session(session_id)
            if not session or session.is_expired(self.clock()):
                raise SessionNotFound("Kiosk session not found or expired", details={"session_id": session_id})
            return self._cart_view(session)

    def add_item(self, session_id: str, product_id: Any, quantity: Any, note: Any = None) -> dict:
        """
        Add a product to the cart, merging with an existing line for it.

        Raises:
            ValidationError: bad product id, quantity or note
            SessionNotFound: missing, expired or submitted session
            ProductNotFound: product does not exist
            ProductNotSellable: product category is not offered at the kiosk
        """
        product_id = require_id(product_id, "product_id")
        quantity = require_quantity(quantity, "quantity")
        note = optional_text(note, "note")

        def _op():
            with self.store.transaction():
                session = self._session_for_change(session_id)

                product = self.store.get_product(product_id)
                if not product:
                    raise ProductNotFound(f"Product {product_id} not found", details={"product_id": product_id})
                if product.category not in self.sellable_categories:
                    raise ProductNotSellable(
                        f"{product.name} is not available at the kiosk",
                        details={"product_id": product_id, "category": product.category},
                    )

                now = self.clock()
                line = session.line_for(product_id)
                if line is None:
                    self.store.add_cart_line(session, KioskCartLine(
                        product_id=product_id,
                        product=product,
                        quantity=quantity,
                        note=note,
                        created_at=now,
                    ))
                else:
                    if line.quantity + quantity > MAX_QUANTITY:
                        raise ValidationError(
                            f"quantity must not exceed {MAX_QUANTITY}",
                            details={"field": "quantity", "value": line.quantity + quantity},
                        )
                    line.quantity += quantity
                    if note:
                        line.note = note
                session.updated_at = now
                return self._cart_view(session)

        return run_with_retry(_op)

    def remove_item(self, session_id: str, product_id: Any) -> dict:
        """Drop the product's line from the cart; a product not in the cart is a no-op."""
        product_id = require_id(product_id, "product_id")

        def _op():
            with self.store.transaction():
                session = self._session_for_change(session_id)
                line = session.line_for(product_id)
                if line is not None:
                    self.store.remove_cart_line(session, line)
                    session.updated_at = self.clock()
                return self._cart_view(session)

        return run_with_retry(_op)

    def submit(self, session_id: str, customer_name: Any = None) -> Order:
        """
        Turn the cart into a pending kiosk order (no stock moves yet).

        Raises:
            SessionNotFound: missing, expired or already submitted session
            EmptyCart: the cart has no lines
        """
        customer_name = optional_text(customer_name, "customer_name") or self.default_customer_name

        def _op():
            with self.store.transaction():
                session = self._session_for_change(session_id)
                if not session.lines:
                    raise EmptyCart("Kiosk cart is empty", details={"session_id": session_id})

                lines = [
                    {"product_id": line.product_id, "quantity": line.quantity, "note": line.note}
                    for line in session.lines
                ]
                order = self.orders._create_order_locked(
                    CHANNEL_KIOSK,
                    lines,
                    customer_name=customer_name,
                )

                session.status = SESSION_SUBMITTED
                session.submitted_order_id = order.id
                session.updated_at = self.clock()
                return order

        return run_with_retry(_op)
