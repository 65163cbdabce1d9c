"""
Pytest fixtures for counterpos backend tests.

Provides the SQL-backed app and test client, plus a service stack over the
in-memory store with a controllable clock.
"""

from datetime import datetime, timedelta

import pytest

from counterpos import create_app
from counterpos.extensions import db
from counterpos.services import build_services
from counterpos.storage import InMemoryStore, SqlAlchemyStore

OPERATOR_HEADERS = {"X-Operator-Id": "7"}


class FakeClock:
    """Deterministic replacement for utcnow()."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 3, 1, 9, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def clock():
    return FakeClock()


@pytest.fixture(scope='function')
def services(clock):
    """Core services over the in-memory store."""
    return build_services(InMemoryStore(), {}, clock=clock)


@pytest.fixture(scope='function')
def sql_services(app, db_session, clock):
    """Core services over the SQL store with a controllable clock."""
    return build_services(SqlAlchemyStore(db), app.config, clock=clock)


def make_product(services, name="Americano", category="beverage", price_cents=8000, stock=50, threshold=10):
    """Helper to create a product through the catalog."""
    return services.catalog.create_product(
        name=name,
        category=category,
        price_cents=price_cents,
        current_stock=stock,
        low_stock_threshold=threshold,
    )
