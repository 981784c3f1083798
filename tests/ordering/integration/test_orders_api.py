"""Integration tests for the ordering HTTP API via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api import customer_router, order_router, store_router
from ordering.api.errors import register_error_handlers
from ordering.order.order import Order
from protean import current_domain

STORE = {"X-Actor-Role": "store", "X-Actor-Id": "store-001"}
CUSTOMER = {"X-Actor-Role": "customer", "X-Actor-Id": "user-001"}
COURIER = {"X-Actor-Role": "courier", "X-Actor-Id": "courier-001"}


@pytest.fixture()
def client(directory):
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(store_router)
    app.include_router(customer_router)
    register_error_handlers(app)
    return TestClient(app)


def _create_order(client, **overrides):
    body = {
        "store_id": "store-001",
        "user_id": "user-001",
        "address_id": "addr-001",
        "phone_number": "+15550100",
        "items": [
            {"product_id": "P1", "quantity": 2},
            {"product_id": "P2", "quantity": 1},
        ],
        "payment_method": "cash",
        "delivery_fee": 3.0,
    }
    body.update(overrides)
    response = client.post("/orders", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def _advance_to_preparing(client, order_id):
    for status in ("accepted", "preparing"):
        response = client.put(f"/orders/{order_id}/status", json={"status": status}, headers=STORE)
        assert response.status_code == 200, response.text


def _advance_to_ready(client, order_id):
    _advance_to_preparing(client, order_id)
    response = client.post(f"/orders/{order_id}/ready", headers=STORE)
    assert response.status_code == 200, response.text
    return response.json()["delivery_code"]


def _advance_to_delivered(client, order_id):
    code = _advance_to_ready(client, order_id)
    response = client.post(f"/orders/{order_id}/verify", json={"code": code}, headers=COURIER)
    assert response.status_code == 200, response.text


class TestCreateOrderEndpoint:
    def test_create_order(self, client):
        body = _create_order(client)

        assert body["status"] == "pending"
        assert body["items_price"] == 25.0
        assert body["order_total"] == 28.0
        assert len(body["items"]) == 2
        assert body["delivery_code"] is None

        stored = current_domain.repository_for(Order).get(body["order_id"])
        assert stored.order_number == body["order_number"]

    def test_zone_fee_when_fee_omitted(self, client):
        body = _create_order(client, delivery_fee=None)
        assert body["delivery_fee"] == 3.0

    def test_unknown_store_is_404(self, client):
        response = client.post(
            "/orders",
            json={
                "store_id": "store-404",
                "user_id": "user-001",
                "address_id": "addr-001",
                "phone_number": "+15550100",
                "items": [{"product_id": "P1", "quantity": 1}],
            },
        )
        assert response.status_code == 404
        assert response.json()["code"] == "StoreNotFound"
        assert response.json()["error"]["store_id"]

    def test_zero_quantity_is_400(self, client):
        response = client.post(
            "/orders",
            json={
                "store_id": "store-001",
                "user_id": "user-001",
                "address_id": "addr-001",
                "phone_number": "+15550100",
                "items": [{"product_id": "P1", "quantity": 0}],
            },
        )
        assert response.status_code == 400
        assert response.json()["code"] == "ValidationError"

    def test_empty_cart_is_400(self, client):
        response = client.post(
            "/orders",
            json={
                "store_id": "store-001",
                "user_id": "user-001",
                "address_id": "addr-001",
                "phone_number": "+15550100",
                "items": [],
            },
        )
        assert response.status_code == 400


class TestReadEndpoints:
    def test_get_order(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.get(f"/orders/{order_id}", headers=STORE)
        assert response.status_code == 200
        assert response.json()["order_id"] == order_id

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/missing", headers=STORE)
        assert response.status_code == 404
        assert response.json()["code"] == "OrderNotFound"
        assert "order_id" in response.json()["error"]

    def test_missing_actor_is_403(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.get(f"/orders/{order_id}")
        assert response.status_code == 403

    def test_unknown_role_is_403(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.get(f"/orders/{order_id}", headers={"X-Actor-Role": "admin"})
        assert response.status_code == 403

    def test_track_by_tracking_number(self, client):
        created = _create_order(client)
        response = client.get(f"/orders/track/{created['tracking_number']}")
        assert response.status_code == 200
        assert response.json()["order_number"] == created["order_number"]

    def test_unknown_tracking_number_is_404(self, client):
        response = client.get("/orders/track/nope")
        assert response.status_code == 404
        assert isinstance(response.json()["error"], dict)

    def test_code_is_only_shown_to_the_ordering_customer(self, client):
        created = _create_order(client)
        order_id = created["order_id"]
        code = _advance_to_ready(client, order_id)

        assert client.get(f"/orders/{order_id}", headers=CUSTOMER).json()["delivery_code"] == code
        assert client.get(f"/orders/{order_id}", headers=COURIER).json()["delivery_code"] is None
        assert client.get(f"/orders/{order_id}", headers=STORE).json()["delivery_code"] is None
        tracked = client.get(f"/orders/track/{created['tracking_number']}")
        assert tracked.json()["delivery_code"] is None


class TestStatusEndpoint:
    def test_store_accepts(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.put(f"/orders/{order_id}/status", json={"status": "accepted"}, headers=STORE)
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

    def test_invalid_transition_is_409(self, client):
        order_id = _create_order(client)["order_id"]
        _advance_to_preparing(client, order_id)
        response = client.put(f"/orders/{order_id}/status", json={"status": "pending"}, headers=STORE)
        assert response.status_code == 409
        assert response.json()["code"] == "InvalidTransition"
        assert response.json()["error"]["status"] == ["Cannot transition from preparing to pending"]

    def test_unknown_status_is_400(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.put(f"/orders/{order_id}/status", json={"status": "shipped"}, headers=STORE)
        assert response.status_code == 400

    def test_wrong_role_is_403(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.put(f"/orders/{order_id}/status", json={"status": "accepted"}, headers=CUSTOMER)
        assert response.status_code == 403
        assert response.json()["code"] == "NotPermitted"

    def test_customer_cancels(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.put(f"/orders/{order_id}/status", json={"status": "canceled"}, headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["status"] == "canceled"

    def test_ready_through_status_returns_code(self, client):
        order_id = _create_order(client)["order_id"]
        _advance_to_preparing(client, order_id)
        response = client.put(f"/orders/{order_id}/status", json={"status": "ready"}, headers=STORE)
        assert response.status_code == 200
        assert len(response.json()["delivery_code"]) == 4

    def test_delivered_through_status_is_409(self, client):
        order_id = _create_order(client)["order_id"]
        _advance_to_ready(client, order_id)
        response = client.put(f"/orders/{order_id}/status", json={"status": "delivered"}, headers=COURIER)
        assert response.status_code == 409


class TestDeliveryEndpoints:
    def test_ready_is_idempotent(self, client):
        order_id = _create_order(client)["order_id"]
        code = _advance_to_ready(client, order_id)
        again = client.post(f"/orders/{order_id}/ready", headers=STORE)
        assert again.status_code == 200
        assert again.json()["delivery_code"] == code

    def test_verify_with_matching_code(self, client):
        order_id = _create_order(client)["order_id"]
        code = _advance_to_ready(client, order_id)

        response = client.post(f"/orders/{order_id}/verify", json={"code": code}, headers=COURIER)

        assert response.status_code == 200
        assert response.json()["status"] == "delivered"
        assert response.json()["delivery_code"] is None

    def test_wrong_code_is_422(self, client):
        order_id = _create_order(client)["order_id"]
        code = _advance_to_ready(client, order_id)
        wrong = "1000" if code != "1000" else "1001"

        response = client.post(f"/orders/{order_id}/verify", json={"code": wrong}, headers=COURIER)

        assert response.status_code == 422
        assert response.json()["code"] == "CodeMismatch"

    def test_replayed_code_is_409(self, client):
        order_id = _create_order(client)["order_id"]
        code = _advance_to_ready(client, order_id)
        client.post(f"/orders/{order_id}/verify", json={"code": code}, headers=COURIER)

        response = client.post(f"/orders/{order_id}/verify", json={"code": code}, headers=COURIER)

        assert response.status_code == 409
        assert response.json()["code"] == "NotReady"


class TestRatingEndpoint:
    def test_rate_delivered_order(self, client):
        order_id = _create_order(client)["order_id"]
        _advance_to_delivered(client, order_id)

        response = client.post(f"/orders/{order_id}/rating", json={"rating": 4}, headers=CUSTOMER)

        assert response.status_code == 200
        body = response.json()
        assert body["rating"] == 4
        assert body["store_rating"] == 4.0
        assert body["store_rating_count"] == 1

    def test_second_rating_is_409(self, client):
        order_id = _create_order(client)["order_id"]
        _advance_to_delivered(client, order_id)
        client.post(f"/orders/{order_id}/rating", json={"rating": 4}, headers=CUSTOMER)

        response = client.post(f"/orders/{order_id}/rating", json={"rating": 5}, headers=CUSTOMER)

        assert response.status_code == 409
        assert response.json()["code"] == "AlreadyRated"
        assert "rating" in response.json()["error"]

    def test_out_of_range_is_400(self, client):
        order_id = _create_order(client)["order_id"]
        _advance_to_delivered(client, order_id)
        response = client.post(f"/orders/{order_id}/rating", json={"rating": 7}, headers=CUSTOMER)
        assert response.status_code == 400
        assert response.json()["code"] == "InvalidRating"

    def test_undelivered_is_409(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.post(f"/orders/{order_id}/rating", json={"rating": 5}, headers=CUSTOMER)
        assert response.status_code == 409
        assert response.json()["code"] == "NotDelivered"


class TestPurgeEndpoint:
    def test_purge_rejected_order(self, client):
        order_id = _create_order(client)["order_id"]
        client.put(f"/orders/{order_id}/status", json={"status": "rejected"}, headers=STORE)

        response = client.delete(f"/orders/{order_id}", headers=STORE)

        assert response.status_code == 204
        assert client.get(f"/orders/{order_id}", headers=STORE).status_code == 404

    def test_purge_live_order_is_409(self, client):
        order_id = _create_order(client)["order_id"]
        response = client.delete(f"/orders/{order_id}", headers=STORE)
        assert response.status_code == 409


class TestListingEndpoints:
    def test_store_orders_are_paged_newest_first(self, client, clock):
        first = _create_order(client)
        second = _create_order(client)

        response = client.get("/stores/store-001/orders", params={"page": 1, "page_size": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert body["page_size"] == 1
        assert len(body["orders"]) == 1
        assert body["orders"][0]["order_number"] in {first["order_number"], second["order_number"]}

    def test_page_size_is_capped(self, client):
        response = client.get("/stores/store-001/orders", params={"page_size": 500})
        assert response.status_code == 400

    def test_pending_orders(self, client):
        pending = _create_order(client)["order_id"]
        accepted = _create_order(client)["order_id"]
        client.put(f"/orders/{accepted}/status", json={"status": "accepted"}, headers=STORE)

        response = client.get("/stores/store-001/orders/pending")

        assert [order["order_id"] for order in response.json()["orders"]] == [pending]

    def test_customer_active_and_all(self, client):
        active = _create_order(client)["order_id"]
        canceled = _create_order(client)["order_id"]
        client.put(f"/orders/{canceled}/status", json={"status": "canceled"}, headers=CUSTOMER)

        active_ids = [o["order_id"] for o in client.get("/customers/user-001/orders", headers=CUSTOMER).json()["orders"]]
        all_ids = [
            o["order_id"]
            for o in client.get("/customers/user-001/orders", params={"scope": "all"}, headers=CUSTOMER).json()[
                "orders"
            ]
        ]

        assert active_ids == [active]
        assert set(all_ids) == {active, canceled}

    def test_customer_cannot_list_someone_else(self, client):
        response = client.get(
            "/customers/user-001/orders",
            headers={"X-Actor-Role": "customer", "X-Actor-Id": "user-002"},
        )
        assert response.status_code == 403
