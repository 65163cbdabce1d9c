"""
Kiosk cart tests: session lifetime, merging, submission.
"""

import pytest

from counterpos.errors import EmptyCart, ProductNotFound, ProductNotSellable, SessionNotFound

from conftest import make_product


@pytest.fixture
def latte(services):
    return make_product(services, name="Latte", price_cents=11000, stock=40)


@pytest.fixture
def session_id(services):
    return services.kiosk.create_session().id


class TestSessionLifetime:

    def test_new_session_is_active_and_empty(self, services, clock):
        session = services.kiosk.create_session()
        cart = services.kiosk.read_cart(session.id)

        assert cart["status"] == "active"
        assert cart["lines"] == []
        assert cart["total_cents"] == 0
        assert session.expires_at == clock.now + services.kiosk.ttl

    def test_session_ids_are_unique(self, services):
        ids = {services.kiosk.create_session().id for _ in range(20)}
        assert len(ids) == 20

    def test_unknown_session(self, services):
        with pytest.raises(SessionNotFound):
            services.kiosk.read_cart("nope")

    def test_expired_session_rejects_add(self, services, clock, latte, session_id):
        clock.advance(minutes=30)
        with pytest.raises(SessionNotFound):
            services.kiosk.add_item(session_id, latte.id, 1)

    def test_session_usable_just_before_expiry(self, services, clock, latte, session_id):
        clock.advance(minutes=29, seconds=59)
        cart = services.kiosk.add_item(session_id, latte.id, 1)
        assert cart["item_count"] == 1

    def test_expired_session_cannot_be_read(self, services, clock, session_id):
        clock.advance(minutes=31)
        with pytest.raises(SessionNotFound):
            services.kiosk.read_cart(session_id)


class TestCart:

    def test_add_prices_from_catalog(self, services, latte, session_id):
        cart = services.kiosk.add_item(session_id, latte.id, 2, "oat milk")

        assert cart["lines"] == [{
            "product_id": latte.id,
            "product_name": "Latte",
            "category": "beverage",
            "quantity": 2,
            "unit_price_cents": 11000,
            "subtotal_cents": 22000,
            "note": "oat milk",
        }]
        assert cart["total_cents"] == 22000

    def test_repeat_add_merges(self, services, latte, session_id):
        services.kiosk.add_item(session_id, latte.id, 1, "oat milk")
        cart = services.kiosk.add_item(session_id, latte.id, 2)

        assert len(cart["lines"]) == 1
        assert cart["lines"][0]["quantity"] == 3
        assert cart["item_count"] == 1
        assert cart["unit_count"] == 3
        assert cart["lines"][0]["note"] == "oat milk"

        cart = services.kiosk.add_item(session_id, latte.id, 1, "extra hot")
        assert cart["lines"][0]["note"] == "extra hot"

    def test_cart_shows_current_price(self, services, latte, session_id):
        services.kiosk.add_item(session_id, latte.id, 1)
        services.catalog.update_product(latte.id, {"price_cents": 12000})

        assert services.kiosk.read_cart(session_id)["total_cents"] == 12000

    def test_ingredients_are_not_sellable(self, services, session_id):
        milk = make_product(services, name="Fresh Milk", category="ingredient", stock=3)
        with pytest.raises(ProductNotSellable):
            services.kiosk.add_item(session_id, milk.id, 1)

    def test_unknown_product(self, services, session_id):
        with pytest.raises(ProductNotFound):
            services.kiosk.add_item(session_id, 999, 1)

    def test_remove_item(self, services, latte, session_id):
        muffin = make_product(services, name="Muffin", category="food", price_cents=5000)
        services.kiosk.add_item(session_id, latte.id, 1)
        services.kiosk.add_item(session_id, muffin.id, 1)

        cart = services.kiosk.remove_item(session_id, latte.id)
        assert [line["product_id"] for line in cart["lines"]] == [muffin.id]

    def test_remove_absent_item_is_noop(self, services, latte, session_id):
        services.kiosk.add_item(session_id, latte.id, 1)
        cart = services.kiosk.remove_item(session_id, 12345)
        assert cart["item_count"] == 1

    def test_menu_only_lists_sellable_in_stock(self, services, latte):
        make_product(services, name="Croissant", category="food", price_cents=4500, stock=0)
        make_product(services, name="Fresh Milk", category="ingredient", stock=3)

        menu = services.kiosk.menu()
        assert [p["name"] for p in menu["beverage"]] == ["Latte"]
        assert menu["food"] == []
        assert "ingredient" not in menu


class TestSubmit:

    def test_submit_creates_pending_kiosk_order(self, services, latte, session_id):
        services.kiosk.add_item(session_id, latte.id, 2)
        order = services.kiosk.submit(session_id)

        assert order.channel == "kiosk"
        assert order.status == "pending"
        assert order.customer_name == "Kiosk Customer"
        assert order.order_number == "KIOSK-000001"
        assert order.total_before_discount_cents == 22000
        # Stock waits for payment
        assert services.catalog.get_product(latte.id).current_stock == 40

        cart = services.kiosk.read_cart(session_id)
        assert cart["status"] == "submitted"
        assert cart["submitted_order_id"] == order.id

    def test_customer_name_is_kept(self, services, latte, session_id):
        services.kiosk.add_item(session_id, latte.id, 1)
        order = services.kiosk.submit(session_id, "Ana")
        assert order.customer_name == "Ana"

    def test_empty_cart_cannot_be_submitted(self, services, session_id):
        with pytest.raises(EmptyCart):
            services.kiosk.submit(session_id)

    def test_submitted_session_rejects_changes(self, services, latte, session_id):
        services.kiosk.add_item(session_id, latte.id, 1)
        services.kiosk.submit(session_id)

        with pytest.raises(SessionNotFound):
            services.kiosk.add_item(session_id, latte.id, 1)
        with pytest.raises(SessionNotFound):
            services.kiosk.submit(session_id)

    def test_submitted_order_appears_in_pending_queue(self, services, latte, session_id):
        services.kiosk.add_item(session_id, latte.id, 1)
        order = services.kiosk.submit(session_id)

        assert [o.id for o in services.orders.list_pending_kiosk_orders()] == [order.id]
