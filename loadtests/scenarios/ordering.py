"""Ordering load test scenarios.

Three stateful SequentialTaskSet journeys: the full order lifecycle
through delivery verification and rating, a customer cancelling inside
the window followed by a store purge, and a store operator polling its
dashboard listings.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    courier_headers,
    customer_headers,
    order_data,
    random_store_id,
    rating_data,
    store_headers,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderState


class _OrderJourney(SequentialTaskSet):
    def on_start(self):
        self.state = OrderState()

    def place_order(self):
        payload = order_data()
        with self.client.post(
            "/orders",
            json=payload,
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                body = resp.json()
                self.state.order_id = body["order_id"]
                self.state.store_id = body["store_id"]
                self.state.user_id = body["user_id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    def move_to(self, status: str, headers: dict):
        with self.client.put(
            f"/orders/{self.state.order_id}/status",
            json={"status": status},
            headers=headers,
            catch_response=True,
            name=f"PUT /orders/{{id}}/status [{status}]",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = status
            else:
                resp.failure(f"Move to {status} failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()


class OrderFullLifecycleJourney(_OrderJourney):
    """Place -> Accept -> Preparing -> Ready -> Verify code -> Rate.

    The happy path through the whole pipeline, including the single-use
    delivery code and the store rating recompute.
    """

    @task
    def create_order(self):
        self.place_order()

    @task
    def accept(self):
        self.move_to("accepted", store_headers(self.state.store_id))

    @task
    def start_preparing(self):
        self.move_to("preparing", store_headers(self.state.store_id))

    @task
    def mark_ready(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/ready",
            headers=store_headers(self.state.store_id),
            catch_response=True,
            name="POST /orders/{id}/ready",
        ) as resp:
            if resp.status_code == 200:
                self.state.delivery_code = resp.json()["delivery_code"]
                self.state.current_status = "ready"
            else:
                resp.failure(f"Mark ready failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def customer_checks_order(self):
        with self.client.get(
            f"/orders/{self.state.order_id}",
            headers=customer_headers(self.state.user_id),
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Get order failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def verify_delivery(self):
        with self.client.post(
            f"/orders/{self.state.order_id}/verify",
            json={"code": self.state.delivery_code},
            headers=courier_headers(),
            catch_response=True,
            name="POST /orders/{id}/verify",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "delivered"
            else:
                resp.failure(f"Verify failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def rate(self):
        if random.random() < 0.3:
            return
        with self.client.post(
            f"/orders/{self.state.order_id}/rating",
            json=rating_data(),
            headers=customer_headers(self.state.user_id),
            catch_response=True,
            name="POST /orders/{id}/rating",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Rate failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class OrderCancellationJourney(_OrderJourney):
    """Place -> Customer cancels -> Store purges.

    The cancel lands well inside the default 60 second window.
    """

    @task
    def create_order(self):
        self.place_order()

    @task
    def cancel(self):
        self.move_to("canceled", customer_headers(self.state.user_id))

    @task
    def purge(self):
        with self.client.delete(
            f"/orders/{self.state.order_id}",
            headers=store_headers(self.state.store_id),
            catch_response=True,
            name="DELETE /orders/{id}",
        ) as resp:
            if resp.status_code != 204:
                resp.failure(f"Purge failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class StoreDashboardJourney(SequentialTaskSet):
    """Pending queue -> First page of history -> Tracking lookup."""

    def on_start(self):
        self.store_id = random_store_id()
        self.tracking_number = None

    @task
    def pending_queue(self):
        with self.client.get(
            f"/stores/{self.store_id}/orders/pending",
            catch_response=True,
            name="GET /stores/{id}/orders/pending",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Pending list failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def history_page(self):
        with self.client.get(
            f"/stores/{self.store_id}/orders",
            params={"page": 1, "page_size": 20},
            catch_response=True,
            name="GET /stores/{id}/orders",
        ) as resp:
            if resp.status_code == 200:
                orders = resp.json()["orders"]
                if orders:
                    self.tracking_number = random.choice(orders)["tracking_number"]
            else:
                resp.failure(f"History page failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def track(self):
        if not self.tracking_number:
            return
        with self.client.get(
            f"/orders/track/{self.tracking_number}",
            catch_response=True,
            name="GET /orders/track/{tracking_number}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Track failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class OrderingUser(HttpUser):
    """Locust user simulating marketplace ordering traffic.

    Weighted distribution:
    - 50% Full order lifecycle (happy path)
    - 20% Cancellation + purge
    - 30% Store dashboard polling
    """

    wait_time = between(0.5, 2.0)
    tasks = {
        OrderFullLifecycleJourney: 5,
        OrderCancellationJourney: 2,
        StoreDashboardJourney: 3,
    }
