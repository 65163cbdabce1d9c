"""
HTTP adapter tests: status codes, error bodies and operator identity.
"""

from conftest import OPERATOR_HEADERS


def _create_product(client, **overrides):
    payload = {
        "name": "Americano",
        "category": "beverage",
        "price_cents": 8000,
        "current_stock": 10,
        "low_stock_threshold": 5,
    }
    payload.update(overrides)
    response = client.post("/api/inventory/products", json=payload, headers=OPERATOR_HEADERS)
    assert response.status_code == 201
    return response.json["product"]


class TestOperatorIdentity:

    def test_staff_route_requires_operator(self, client, db_session):
        response = client.get("/api/inventory/products")
        assert response.status_code == 401

    def test_invalid_operator_header(self, client, db_session):
        response = client.get("/api/inventory/products", headers={"X-Operator-Id": "abc"})
        assert response.status_code == 401

    def test_non_ascii_digit_operator_header(self, client, db_session):
        response = client.get("/api/inventory/products", headers={"X-Operator-Id": "²"})
        assert response.status_code == 401

    def test_operator_id_out_of_range(self, client, db_session):
        response = client.get("/api/inventory/products", headers={"X-Operator-Id": "9" * 20})
        assert response.status_code == 401

    def test_kiosk_routes_are_public(self, client, db_session):
        response = client.post("/api/kiosk/sessions")
        assert response.status_code == 201
        assert response.json["session"]["status"] == "active"


class TestOrderRoutes:

    def test_create_discount_pay(self, client, db_session):
        product = _create_product(client, price_cents=10000)

        response = client.post("/api/orders", json={
            "channel": "pos",
            "lines": [{"product_id": product["id"], "quantity": 1}],
        }, headers=OPERATOR_HEADERS)
        assert response.status_code == 201
        order = response.json["order"]
        assert order["order_number"] == "POS-000001"
        assert order["operator_id"] == 7

        response = client.post(
            f"/api/orders/{order['id']}/discount",
            json={"reason": "senior_citizen"},
            headers=OPERATOR_HEADERS,
        )
        assert response.status_code == 200
        assert response.json["order"]["total_after_discount_cents"] == 8000

        response = client.post(
            f"/api/orders/{order['id']}/payment",
            json={"amount_paid_cents": 10000},
            headers=OPERATOR_HEADERS,
        )
        assert response.status_code == 200
        assert response.json["order"]["status"] == "completed"
        assert response.json["order"]["change_cents"] == 2000

    def test_out_of_stock_is_conflict(self, client, db_session):
        product = _create_product(client, current_stock=1)

        response = client.post("/api/orders", json={
            "lines": [{"product_id": product["id"], "quantity": 2}],
        }, headers=OPERATOR_HEADERS)
        assert response.status_code == 409
        assert response.json["code"] == "out_of_stock"
        assert response.json["details"]["items"][0]["on_hand"] == 1

    def test_empty_cart_is_bad_request(self, client, db_session):
        response = client.post("/api/orders", json={"lines": []}, headers=OPERATOR_HEADERS)
        assert response.status_code == 400
        assert response.json["code"] == "empty_cart"

    def test_underpayment(self, client, db_session):
        product = _create_product(client, price_cents=8000)
        order = client.post("/api/orders", json={
            "lines": [{"product_id": product["id"], "quantity": 1}],
        }, headers=OPERATOR_HEADERS).json["order"]

        response = client.post(
            f"/api/orders/{order['id']}/payment",
            json={"amount_paid_cents": 5000},
            headers=OPERATOR_HEADERS,
        )
        assert response.status_code == 409
        assert response.json["code"] == "insufficient_payment"
        assert response.json["details"]["amount_due_cents"] == 8000

    def test_manual_discount_needs_amount(self, client, db_session):
        product = _create_product(client)
        order = client.post("/api/orders", json={
            "lines": [{"product_id": product["id"], "quantity": 1}],
        }, headers=OPERATOR_HEADERS).json["order"]

        response = client.post(
            f"/api/orders/{order['id']}/discount",
            json={"reason": "manual"},
            headers=OPERATOR_HEADERS,
        )
        assert response.status_code == 400
        assert response.json["code"] == "validation_error"

    def test_missing_order(self, client, db_session):
        response = client.get("/api/orders/999999", headers=OPERATOR_HEADERS)
        assert response.status_code == 404
        assert response.json["code"] == "order_not_found"


class TestKioskRoutes:

    def test_kiosk_flow_to_counter(self, client, db_session):
        product = _create_product(client, name="Latte", price_cents=11000)
        session_id = client.post("/api/kiosk/sessions").json["session"]["session_id"]

        menu = client.get("/api/kiosk/menu").json["menu"]
        assert [p["name"] for p in menu["beverage"]] == ["Latte"]

        response = client.post(
            f"/api/kiosk/sessions/{session_id}/cart",
            json={"product_id": product["id"], "quantity": 2, "note": "oat milk"},
        )
        assert response.status_code == 200
        assert response.json["cart"]["total_cents"] == 22000

        response = client.post(f"/api/kiosk/sessions/{session_id}/submit", json={})
        assert response.status_code == 201
        order = response.json["order"]
        assert order["channel"] == "kiosk"
        assert order["customer_name"] == "Kiosk Customer"

        pending = client.get("/api/orders/kiosk/pending", headers=OPERATOR_HEADERS).json
        assert [o["id"] for o in pending["orders"]] == [order["id"]]

        response = client.post(
            f"/api/kiosk/sessions/{session_id}/cart",
            json={"product_id": product["id"], "quantity": 1},
        )
        assert response.status_code == 404
        assert response.json["code"] == "session_not_found"

    def test_remove_item(self, client, db_session):
        product = _create_product(client)
        session_id = client.post("/api/kiosk/sessions").json["session"]["session_id"]
        client.post(f"/api/kiosk/sessions/{session_id}/cart", json={"product_id": product["id"], "quantity": 1})

        response = client.delete(f"/api/kiosk/sessions/{session_id}/cart/{product['id']}")
        assert response.status_code == 200
        assert response.json["cart"]["lines"] == []

    def test_unknown_session(self, client, db_session):
        response = client.get("/api/kiosk/sessions/does-not-exist/cart")
        assert response.status_code == 404


class TestInventoryRoutes:

    def test_adjust_and_history(self, client, db_session):
        product = _create_product(client, current_stock=10)

        response = client.post("/api/inventory/adjustments", json={
            "product_id": product["id"],
            "kind": "deduct",
            "quantity": 7,
            "reason": "Spoilage",
        }, headers=OPERATOR_HEADERS)
        assert response.status_code == 201
        assert response.json["new_stock"] == 3

        history = client.get(
            f"/api/inventory/adjustments?product_id={product['id']}",
            headers=OPERATOR_HEADERS,
        ).json
        assert [a["kind"] for a in history["adjustments"]] == ["deduct", "add"]

        low = client.get("/api/inventory/low-stock", headers=OPERATOR_HEADERS).json
        assert low["products"][0]["id"] == product["id"]
        assert low["products"][0]["shortfall"] == 2

    def test_negative_adjustment_is_conflict(self, client, db_session):
        product = _create_product(client, current_stock=1)
        response = client.post("/api/inventory/adjustments", json={
            "product_id": product["id"],
            "kind": "deduct",
            "quantity": 2,
        }, headers=OPERATOR_HEADERS)
        assert response.status_code == 409
        assert response.json["code"] == "invalid_adjustment"

    def test_stock_cannot_be_patched(self, client, db_session):
        product = _create_product(client)
        response = client.patch(
            f"/api/inventory/products/{product['id']}",
            json={"current_stock": 99},
            headers=OPERATOR_HEADERS,
        )
        assert response.status_code == 400

    def test_product_summary(self, client, db_session):
        _create_product(client, name="Plenty", current_stock=50)
        _create_product(client, name="Low", current_stock=2)

        body = client.get("/api/inventory/products", headers=OPERATOR_HEADERS).json
        assert body["count"] == 2
        assert body["summary"]["low_stock_count"] == 1


class TestOversizedIds:
    HUGE_ID = 99999999999999999999

    def test_order_path_id(self, client, db_session):
        response = client.get(f"/api/orders/{self.HUGE_ID}", headers=OPERATOR_HEADERS)
        assert response.status_code == 400
        assert response.json["code"] == "validation_error"

    def test_order_line_product_id(self, client, db_session):
        response = client.post("/api/orders", json={
            "lines": [{"product_id": self.HUGE_ID, "quantity": 1}],
        }, headers=OPERATOR_HEADERS)
        assert response.status_code == 400

    def test_adjustment_product_id(self, client, db_session):
        response = client.post("/api/inventory/adjustments", json={
            "product_id": self.HUGE_ID,
            "kind": "add",
            "quantity": 1,
        }, headers=OPERATOR_HEADERS)
        assert response.status_code == 400

    def test_kiosk_cart_product_id(self, client, db_session):
        session_id = client.post("/api/kiosk/sessions").json["session"]["session_id"]
        response = client.post(
            f"/api/kiosk/sessions/{session_id}/cart",
            json={"product_id": self.HUGE_ID, "quantity": 1},
        )
        assert response.status_code == 400

    def test_history_days_out_of_range(self, client, db_session):
        response = client.get("/api/inventory/adjustments?days=999999999", headers=OPERATOR_HEADERS)
        assert response.status_code == 400


class TestSystemRoutes:

    def test_health(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json["checks"]["database"]["status"] == "healthy"

    def test_daily_report_bad_date(self, client, db_session):
        response = client.get("/api/reports/daily?date=yesterday", headers=OPERATOR_HEADERS)
        assert response.status_code == 400

    def test_daily_report_empty(self, client, db_session):
        response = client.get("/api/reports/daily?date=2024-01-01", headers=OPERATOR_HEADERS)
        assert response.status_code == 200
        assert response.json["report"]["transaction_count"] == 0
