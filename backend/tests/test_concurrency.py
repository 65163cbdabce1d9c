"""
Concurrency tests.

SQL runs against a temporary SQLite file so each thread gets its own
connection; the in-memory store is exercised with the same races.
"""

import os
import tempfile
import threading
import unittest

from counterpos import create_app
from counterpos.errors import OrderNotPending, OutOfStock
from counterpos.extensions import db
from counterpos.models import Order, Product
from counterpos.services import build_services
from counterpos.storage import InMemoryStore


def _run_threads(count, target):
    threads = [threading.Thread(target=target, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


class SqlConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        })
        self.services = self.app.extensions["counterpos"]

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            product = self.services.catalog.create_product(
                name="Mocha",
                category="beverage",
                price_cents=12000,
                current_stock=5,
            )
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def test_concurrent_pos_orders_never_oversell(self):
        created = []
        errors = []
        lock = threading.Lock()

        def worker(_):
            with self.app.app_context():
                try:
                    order = self.services.orders.create_order(
                        "pos", [{"product_id": self.product_id, "quantity": 1}]
                    )
                    with lock:
                        created.append(order.order_number)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        _run_threads(8, worker)

        self.assertEqual(len(created), 5)
        self.assertEqual(len(created), len(set(created)))
        self.assertEqual(len(errors), 3)
        self.assertTrue(all(isinstance(e, OutOfStock) for e in errors))

        with self.app.app_context():
            stock = db.session.query(Product.current_stock).filter_by(id=self.product_id).scalar()
            self.assertEqual(stock, 0)

    def test_correction_during_sales_keeps_count(self):
        created = []
        corrections = []
        errors = []
        lock = threading.Lock()

        def worker(i):
            with self.app.app_context():
                try:
                    if i == 0:
                        adjustment = self.services.stock.adjust(self.product_id, "correction", 20, reason="Recount")
                        with lock:
                            corrections.append((adjustment.previous_stock, adjustment.quantity_delta))
                    else:
                        self.services.orders.create_order(
                            "pos", [{"product_id": self.product_id, "quantity": 1}]
                        )
                        with lock:
                            created.append(i)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        _run_threads(7, worker)

        self.assertEqual(len(corrections), 1)
        previous, delta = corrections[0]
        self.assertEqual(delta, 20 - previous)
        self.assertEqual(len(created) + len(errors), 6)
        self.assertTrue(all(isinstance(e, OutOfStock) for e in errors))

        # Sales before the recount came out of the original 5, the rest out of 20
        sold_before = 5 - previous
        sold_after = len(created) - sold_before
        with self.app.app_context():
            stock = db.session.query(Product.current_stock).filter_by(id=self.product_id).scalar()
            self.assertEqual(stock, 20 - sold_after)

    def test_concurrent_payments_complete_once(self):
        with self.app.app_context():
            order = self.services.orders.create_order(
                "kiosk", [{"product_id": self.product_id, "quantity": 2}]
            )
            order_id = order.id

        results = []
        lock = threading.Lock()

        def worker(_):
            with self.app.app_context():
                try:
                    self.services.settlement.pay(order_id, 24000)
                    outcome = "paid"
                except OrderNotPending:
                    outcome = "already_paid"
                except Exception as exc:
                    outcome = exc
                finally:
                    db.session.remove()
                with lock:
                    results.append(outcome)

        _run_threads(4, worker)

        self.assertEqual(results.count("paid"), 1)
        self.assertEqual(results.count("already_paid"), 3)

        with self.app.app_context():
            stock = db.session.query(Product.current_stock).filter_by(id=self.product_id).scalar()
            self.assertEqual(stock, 3)
            self.assertEqual(db.session.get(Order, order_id).status, "completed")
            self.assertEqual(self.services.reporting.daily().transaction_count, 1)


class MemoryConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.services = build_services(InMemoryStore(), {})
        self.product = self.services.catalog.create_product(
            name="Latte",
            category="beverage",
            price_cents=11000,
            current_stock=10,
        )

    def test_concurrent_kiosk_payments_share_stock(self):
        orders = [
            self.services.orders.create_order("kiosk", [{"product_id": self.product.id, "quantity": 3}])
            for _ in range(5)
        ]
        paid = []
        rejected = []
        lock = threading.Lock()

        def worker(i):
            try:
                self.services.settlement.pay(orders[i].id, 33000)
                with lock:
                    paid.append(i)
            except OutOfStock:
                with lock:
                    rejected.append(i)

        _run_threads(5, worker)

        self.assertEqual(len(paid), 3)
        self.assertEqual(len(rejected), 2)
        self.assertEqual(self.product.current_stock, 1)

    def test_concurrent_cart_additions_all_land(self):
        session_id = self.services.kiosk.create_session().id

        def worker(_):
            self.services.kiosk.add_item(session_id, self.product.id, 1)

        _run_threads(20, worker)

        cart = self.services.kiosk.read_cart(session_id)
        self.assertEqual(len(cart["lines"]), 1)
        self.assertEqual(cart["lines"][0]["quantity"], 20)

    def test_order_numbers_unique_under_load(self):
        numbers = []
        lock = threading.Lock()

        def worker(_):
            order = self.services.orders.create_order("pos", [{"product_id": self.product.id, "quantity": 1}])
            with lock:
                numbers.append(order.order_number)

        _run_threads(10, worker)

        self.assertEqual(len(set(numbers)), 10)
        self.assertEqual(self.product.current_stock, 0)
