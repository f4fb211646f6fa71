# Overview: Pytest coverage for the HTTP surface of the order core.

"""
API Tests

Drive the blueprints through the Flask test client with the identity headers
the auth gateway forwards.
"""

import pytest

from laundrypos.models import Order
from laundrypos.models.tenancy import SUBSCRIPTION_SUSPENDED

from conftest import auth_headers, sample_items, set_subscription


def _create_payload(customer, **overrides):
    payload = {
        "customer_id": customer.id,
        "items": sample_items(15000),
        "total_amount_cents": 15000,
    }
    payload.update(overrides)
    return payload


class TestOrderEndpoints:
    def test_create_order(self, client, db_session, owner_a, customer_a):
        response = client.post(
            "/api/orders/",
            json=_create_payload(customer_a, initial_payment_cents=5000),
            headers=auth_headers(owner_a),
        )

        assert response.status_code == 201
        body = response.get_json()
        assert body["replayed"] is False
        assert body["order"]["status"] == "PROCESSING"
        assert body["order"]["balance_cents"] == 10000
        assert body["payment"]["amount_cents"] == 5000
        assert body["order"]["items"][0]["name"] == "Duvet"

    def test_create_order_replay_returns_200(self, client, db_session, owner_a, customer_a):
        payload = _create_payload(customer_a, idempotency_key="tab-9:1", initial_payment_cents=2000)
        first = client.post("/api/orders/", json=payload, headers=auth_headers(owner_a))
        second = client.post("/api/orders/", json=payload, headers=auth_headers(owner_a))

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.get_json()["replayed"] is True
        assert second.get_json()["order"]["id"] == first.get_json()["order"]["id"]
        assert second.get_json()["payment"] == first.get_json()["payment"]
        assert second.get_json()["payment"]["amount_cents"] == 2000

    def test_shop_id_in_body_is_ignored(self, client, db_session, owner_a, shop_b, customer_a):
        response = client.post(
            "/api/orders/",
            json=_create_payload(customer_a, shop_id=shop_b.id),
            headers=auth_headers(owner_a),
        )
        assert response.status_code == 201
        assert response.get_json()["order"]["shop_id"] == owner_a.shop_id

    def test_validation_error_shape(self, client, db_session, owner_a, customer_a):
        response = client.post(
            "/api/orders/",
            json=_create_payload(customer_a, total_amount_cents="12.50"),
            headers=auth_headers(owner_a),
        )
        assert response.status_code == 400
        body = response.get_json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["retryable"] is False
        assert "error" in body

    def test_non_json_body_is_validation_error(self, client, db_session, owner_a):
        response = client.post(
            "/api/orders/", data="not json", headers=auth_headers(owner_a),
        )
        assert response.status_code == 400

    def test_get_and_list(self, client, db_session, owner_a, customer_a, make_order):
        order = make_order(owner_a, customer_a)

        single = client.get(f"/api/orders/{order.id}", headers=auth_headers(owner_a))
        listing = client.get("/api/orders/?status=CREATED&per_page=5", headers=auth_headers(owner_a))

        assert single.status_code == 200
        assert single.get_json()["order"]["id"] == order.id
        assert listing.status_code == 200
        assert listing.get_json()["total"] == 1
        assert listing.get_json()["per_page"] == 5

    def test_per_page_cap(self, client, db_session, owner_a):
        response = client.get("/api/orders/?per_page=1000", headers=auth_headers(owner_a))
        assert response.status_code == 400

    def test_other_shop_order_is_404(self, client, db_session, owner_a, owner_b, customer_b, make_order):
        order_b = make_order(owner_b, customer_b)

        for response in (
            client.get(f"/api/orders/{order_b.id}", headers=auth_headers(owner_a)),
            client.post(f"/api/orders/{order_b.id}/ready", headers=auth_headers(owner_a)),
            client.post(f"/api/orders/{order_b.id}/collect", json={"pin": "123456"}, headers=auth_headers(owner_a)),
        ):
            assert response.status_code == 404
            assert response.get_json()["code"] == "ORDER_NOT_FOUND"

    def test_ready_then_collect(self, client, db_session, owner_a, employee_a, customer_a, make_order):
        order = make_order(owner_a, customer_a, total_cents=2000, initial_cents=2000)

        ready = client.post(f"/api/orders/{order.id}/ready", headers=auth_headers(owner_a))
        assert ready.status_code == 200
        pin = ready.get_json()["pickup_pin"]
        assert ready.get_json()["order"]["has_pickup_pin"] is True

        again = client.post(f"/api/orders/{order.id}/ready", headers=auth_headers(owner_a))
        assert again.status_code == 409
        assert again.get_json()["code"] == "INVALID_TRANSITION"

        collected = client.post(
            f"/api/orders/{order.id}/collect", json={"pin": pin}, headers=auth_headers(employee_a),
        )
        assert collected.status_code == 200
        assert collected.get_json()["order"]["status"] == "COLLECTED"
        assert collected.get_json()["order"]["collected_by"] == "employee-a"

        twice = client.post(
            f"/api/orders/{order.id}/collect", json={"pin": pin}, headers=auth_headers(employee_a),
        )
        assert twice.status_code == 409
        assert twice.get_json()["code"] == "NOT_READY"

    def test_wrong_pin_is_401(self, client, db_session, owner_a, ready_order):
        order, pin = ready_order
        wrong = "000000" if pin != "000000" else "111111"

        response = client.post(
            f"/api/orders/{order.id}/collect", json={"pin": wrong}, headers=auth_headers(owner_a),
        )
        assert response.status_code == 401
        assert response.get_json()["code"] == "INVALID_SECRET"

    def test_outstanding_balance_is_409(self, client, db_session, owner_a, customer_a, make_order):
        order = make_order(owner_a, customer_a, total_cents=2000, initial_cents=500)
        pin = client.post(f"/api/orders/{order.id}/ready", headers=auth_headers(owner_a)).get_json()["pickup_pin"]

        response = client.post(
            f"/api/orders/{order.id}/collect", json={"pin": pin}, headers=auth_headers(owner_a),
        )
        assert response.status_code == 409
        body = response.get_json()
        assert body["code"] == "OUTSTANDING_BALANCE"
        assert body["details"]["balance_cents"] == 1500


class TestPaymentEndpoints:
    def test_record_payment(self, client, db_session, owner_a, customer_a, make_order):
        order = make_order(owner_a, customer_a, total_cents=10000)

        response = client.post(
            "/api/payments/",
            json={"order_id": order.id, "amount_cents": 2500, "method": "ELECTRONIC"},
            headers=auth_headers(owner_a),
        )

        assert response.status_code == 201
        body = response.get_json()
        assert body["payment"]["amount_cents"] == 2500
        assert body["order"]["balance_cents"] == 7500
        assert body["order"]["status"] == "PROCESSING"

    def test_payment_replay(self, client, db_session, owner_a, customer_a, make_order):
        order = make_order(owner_a, customer_a, total_cents=10000)
        payload = {"order_id": order.id, "amount_cents": 2500, "idempotency_key": "pay-77"}

        first = client.post("/api/payments/", json=payload, headers=auth_headers(owner_a))
        second = client.post("/api/payments/", json=payload, headers=auth_headers(owner_a))

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.get_json()["payment"]["id"] == first.get_json()["payment"]["id"]
        assert second.get_json()["order"]["amount_paid_cents"] == 2500

    def test_overpayment_is_409_with_details(self, client, db_session, owner_a, customer_a, make_order):
        order = make_order(owner_a, customer_a, total_cents=100, initial_cents=50)

        response = client.post(
            "/api/payments/", json={"order_id": order.id, "amount_cents": 75}, headers=auth_headers(owner_a),
        )

        assert response.status_code == 409
        body = response.get_json()
        assert body["code"] == "EXCEEDS_BALANCE"
        assert body["details"] == {"amount_cents": 75, "balance_cents": 50}

    def test_list_payments(self, client, db_session, owner_a, customer_a, make_order):
        order = make_order(owner_a, customer_a, initial_cents=300)

        response = client.get(f"/api/payments/?order_id={order.id}", headers=auth_headers(owner_a))

        assert response.status_code == 200
        assert [p["amount_cents"] for p in response.get_json()["payments"]] == [300]

    @pytest.mark.parametrize("path", ["/api/orders/", "/api/payments/"])
    def test_suspended_shop_is_403(self, client, db_session, shop_a, owner_a, customer_a, make_order, path):
        order = make_order(owner_a, customer_a)
        set_subscription(shop_a, SUBSCRIPTION_SUSPENDED)

        if path == "/api/orders/":
            payload = _create_payload(customer_a)
        else:
            payload = {"order_id": order.id, "amount_cents": 100}

        response = client.post(path, json=payload, headers=auth_headers(owner_a))

        assert response.status_code == 403
        assert response.get_json()["code"] == "TENANT_SUSPENDED"
        db_session.expire_all()
        assert db_session.get(Order, order.id).amount_paid_cents == 0


class TestHealth:
    def test_health_ok(self, client, db_session):
        response = client.get("/api/health")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "healthy"
        assert body["checks"]["schema"]["status"] == "healthy"
        assert body["timestamp"].endswith("Z")
