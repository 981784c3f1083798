"""Shared BDD fixtures and step definitions for the ordering lifecycle."""

import pytest
from ordering.errors import OrderPolicyViolation
from ordering.order.order import Order
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from pytest_bdd import given, parsers, then, when

# Anything a lifecycle request may legitimately be refused with
REFUSALS = (OrderPolicyViolation, ValidationError)


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the refusal captured by a When step."""
    return {"exc": None}


@pytest.fixture()
def outcome():
    """Container for whatever a When step returned."""
    return {"order": None}


@pytest.fixture()
def attempt(error, outcome):
    """Run a service call, capturing a refusal instead of raising it."""

    def _attempt(action, *args, **kwargs):
        try:
            outcome["order"] = action(*args, **kwargs)
        except REFUSALS as exc:
            error["exc"] = exc

    return _attempt


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an order in status "{status}"'), target_fixture="order")
def _(drive_to, status):
    return drive_to(status)


@given(parsers.cfparse("{seconds:d} seconds have passed"))
def _(clock, seconds):
    clock.advance(seconds)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the store moves the order to "{status}"'))
def _(order, status, state_machine, store_actor, attempt):
    attempt(state_machine.transition, order.id, status, store_actor)


@when(parsers.cfparse('the courier moves the order to "{status}"'))
def _(order, status, state_machine, courier_actor, attempt):
    attempt(state_machine.transition, order.id, status, courier_actor)


@when("the store marks the order ready")
def _(order, delivery, store_actor, attempt):
    attempt(delivery.mark_ready, order.id, store_actor)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the request succeeds")
def _(error):
    assert error["exc"] is None, f"Request was refused: {error['exc']!r}"


@then(parsers.cfparse("the request is refused with {error_name}"))
def _(error, error_name):
    assert error["exc"] is not None, "Request was not refused"
    assert type(error["exc"]).__name__ == error_name


@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert current_domain.repository_for(Order).get(order.id).status == status


@then("the order no longer exists")
def _(order):
    with pytest.raises(ObjectNotFoundError):
        current_domain.repository_for(Order).get(order.id)
