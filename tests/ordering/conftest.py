import json
import os
from datetime import UTC, datetime, timedelta

import pytest

from ordering.order.order import Actor, ActorRole

STORE_ID = "store-001"
OTHER_STORE_ID = "store-002"
USER_ID = "user-001"
ADDRESS_ID = "addr-001"


class FakeClock:
    """Deterministic clock; call it to read, ``advance`` to move it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture(scope="session")
def _ordering_domain(request):
    """Initialize the ordering domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from ordering.domain import ordering

    ordering.init()
    return ordering


@pytest.fixture(scope="session", autouse=True)
def setup_db(_ordering_domain):
    from ordering.utils.db import drop_db, setup_db

    setup_db(_ordering_domain)

    yield

    drop_db(_ordering_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_ordering_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _ordering_domain.domain_context()
    ctx.push()

    yield

    from ordering.directory import reset_directory
    from ordering.realtime import reset_transport
    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    reset_directory()
    reset_transport()
    ctx.pop()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
@pytest.fixture()
def directory():
    """The in-memory directory seeded with one store, its menu and one customer."""
    from ordering.directory import get_directory

    directory = get_directory()
    directory.add_store(STORE_ID, name="Corner Deli", category="Deli", delivery_zones={"Downtown": 3.0})
    directory.add_store(OTHER_STORE_ID, name="Night Owl Pizza", category="Pizza")
    directory.add_address(ADDRESS_ID, user_id=USER_ID, zone="Downtown", details="12 Elm St")
    directory.add_address("addr-far", user_id=USER_ID, zone="Outskirts")
    directory.add_product("P1", price=10.0, name="Club Sandwich", store_id=STORE_ID, category="Sandwiches")
    directory.add_product("P2", price=5.0, name="Lemonade", store_id=STORE_ID, category="Drinks")
    directory.add_product("P9", price=12.0, name="Margherita", store_id=OTHER_STORE_ID, category="Pizza")
    directory.add_user(USER_ID, username="sam", phone_number="+15550100")
    directory.add_user("user-002", username="alex", phone_number="+15550101")
    return directory


@pytest.fixture()
def transport():
    from ordering.realtime import get_transport

    return get_transport()


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC))


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------
@pytest.fixture()
def store_actor():
    return Actor(ActorRole.STORE, STORE_ID)


@pytest.fixture()
def customer_actor():
    return Actor(ActorRole.CUSTOMER, USER_ID)


@pytest.fixture()
def courier_actor():
    return Actor(ActorRole.COURIER, "courier-001")


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------
@pytest.fixture()
def intake(directory, clock):
    from ordering.order.intake import OrderIntakeService

    return OrderIntakeService(directory=directory, clock=clock)


@pytest.fixture()
def state_machine(clock):
    from ordering.order.state_machine import OrderStateMachine

    return OrderStateMachine(clock=clock)


@pytest.fixture()
def delivery(state_machine, clock):
    from ordering.order.delivery import DeliveryVerificationService

    return DeliveryVerificationService(state_machine=state_machine, clock=clock)


@pytest.fixture()
def ratings(directory, clock):
    from ordering.order.rating import RatingAggregator

    return RatingAggregator(directory=directory, clock=clock)


def make_request(**overrides):
    from ordering.order.intake import PlaceOrder

    fields = {
        "store_id": STORE_ID,
        "user_id": USER_ID,
        "address_id": ADDRESS_ID,
        "phone_number": "+15550100",
        "items": [
            {"product_id": "P1", "quantity": 2},
            {"product_id": "P2", "quantity": 1},
        ],
        "payment_method": "cash",
        "delivery_fee": 3.0,
    }
    fields.update(overrides)
    if isinstance(fields["items"], list):
        fields["items"] = json.dumps(fields["items"])
    return PlaceOrder(**fields)


@pytest.fixture()
def place_order(intake):
    """Place an order through intake; keyword overrides go into the request."""

    def _place(**overrides):
        return intake.place_order(make_request(**overrides))

    return _place


@pytest.fixture()
def drive_to(place_order, state_machine, delivery, store_actor, courier_actor):
    """Place an order and walk it to ``status`` through the real services."""

    def _drive(status: str):
        order = place_order()
        if status == "pending":
            return order
        if status == "rejected":
            return state_machine.transition(order.id, "rejected", store_actor)
        order = state_machine.transition(order.id, "accepted", store_actor)
        if status == "accepted":
            return order
        order = state_machine.transition(order.id, "preparing", store_actor)
        if status == "preparing":
            return order
        order = delivery.mark_ready(order.id, store_actor)
        if status == "ready":
            return order
        return delivery.verify_and_complete(order.id, order.delivery_code, courier_actor)

    return _drive


@pytest.fixture()
def order_request():
    """Factory for placement requests with the default two-line cart."""
    return make_request
