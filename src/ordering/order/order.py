"""Order aggregate: the core of the ordering domain.

An Order is placed by a customer against a single store and then driven
through a linear fulfillment pipeline by the store, the courier and the
customer. State lives in the order record itself; every change also raises
a domain event that the realtime notifier fans out after commit.

State Machine (7 states):
    PENDING → ACCEPTED → PREPARING → READY → DELIVERED
    PENDING → REJECTED
    PENDING → CANCELED (customer, within the cancellation window)

READY → DELIVERED is only reachable through delivery verification with
the four-digit code handed to the customer when the order became ready.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
)

from ordering.domain import ordering
from ordering.errors import (
    AlreadyRated,
    CodeMismatch,
    InvalidRating,
    InvalidTransition,
    NotDelivered,
    NotPermitted,
    NotReady,
    WindowExpired,
)
from ordering.order.events import (
    OrderDelivered,
    OrderPlaced,
    OrderRated,
    OrderStatusChanged,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    CANCELED = "canceled"


class PaymentMethod(Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    WALLET = "wallet"


class ActorRole(Enum):
    CUSTOMER = "customer"
    STORE = "store"
    COURIER = "courier"


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.ACCEPTED, OrderStatus.REJECTED, OrderStatus.CANCELED},
    OrderStatus.ACCEPTED: {OrderStatus.PREPARING},
    OrderStatus.PREPARING: {OrderStatus.READY},
    OrderStatus.READY: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.REJECTED: set(),  # Terminal
    OrderStatus.CANCELED: set(),  # Terminal
}

# Which roles may request entry into each status
_TRANSITION_ROLES = {
    OrderStatus.ACCEPTED: {ActorRole.STORE},
    OrderStatus.REJECTED: {ActorRole.STORE},
    OrderStatus.PREPARING: {ActorRole.STORE},
    OrderStatus.READY: {ActorRole.STORE},
    OrderStatus.CANCELED: {ActorRole.CUSTOMER},
    OrderStatus.DELIVERED: {ActorRole.COURIER, ActorRole.STORE},
}

TERMINAL_STATUSES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)
PURGEABLE_STATUSES = frozenset({OrderStatus.REJECTED, OrderStatus.CANCELED})
ACTIVE_STATUSES = frozenset(
    {OrderStatus.PENDING, OrderStatus.ACCEPTED, OrderStatus.PREPARING, OrderStatus.READY}
)


def parse_status(value: str) -> OrderStatus:
    """Turn a wire status into an OrderStatus, rejecting unknown values as bad input."""
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status '{value}'"]}) from None


def utcnow() -> datetime:
    return datetime.now(UTC)


def split_order_number(order_number: str) -> tuple[str, int]:
    """``"261019-0042"`` -> ``("261019", 42)``."""
    day, _, sequence = order_number.partition("-")
    if len(day) != 6 or not day.isdigit() or not sequence.isdigit():
        raise ValidationError({"order_number": [f"Malformed order number '{order_number}'"]})
    return day, int(sequence)


def as_utc(value: datetime | None) -> datetime | None:
    """SQL providers hand back naive timestamps; everything here is stored in UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Actor
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Actor:
    """Who is asking for a change. Authentication happens upstream."""

    role: ActorRole
    actor_id: str | None = None

    @classmethod
    def of(cls, role: str, actor_id: str | None = None) -> "Actor":
        try:
            return cls(role=ActorRole(role), actor_id=actor_id)
        except ValueError:
            raise NotPermitted({"actor": [f"Unknown actor role '{role}'"]}) from None


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A product line, priced at the moment the order was placed."""

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    category_label = String(max_length=255)
    image_ref = String(max_length=500)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    """A customer's order from one store.

    Prices are copied from the catalogue at placement and never recomputed.
    ``delivery_code`` only exists while the order is READY and is cleared
    on handover; ``rating`` can only be set once the order is DELIVERED.
    """

    order_number = String(required=True, max_length=20, unique=True)
    order_day = String(max_length=6)
    daily_sequence = Integer()
    tracking_number = String(required=True, max_length=64, unique=True)

    store_id = Identifier(required=True)
    user_id = Identifier(required=True)
    address_id = Identifier(required=True)
    username = String(max_length=255)
    phone_number = String(required=True, max_length=32)
    delivery_zone = String(max_length=255)

    items = HasMany(OrderItem)
    items_price = Float(default=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    order_total = Float(default=0.0)

    payment_method = String(
        max_length=20,
        choices=PaymentMethod,
        default=PaymentMethod.CASH.value,
    )
    notes = Text()
    requested_delivery_time = DateTime()

    status = String(
        max_length=20,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    delivery_code = String(max_length=4)
    rating = Integer()
    rating_comment = Text()

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def order_total_is_items_plus_delivery(self):
        expected = (self.items_price or 0.0) + (self.delivery_fee or 0.0)
        if abs((self.order_total or 0.0) - expected) > 0.005:
            raise ValidationError({"order_total": ["Order total must equal items price plus delivery fee"]})

    @invariant.post
    def delivery_code_only_while_ready(self):
        if self.delivery_code and self.status != OrderStatus.READY.value:
            raise ValidationError({"delivery_code": ["A delivery code can only exist while the order is ready"]})

    @invariant.post
    def rating_only_after_delivery(self):
        if self.rating is not None and self.status != OrderStatus.DELIVERED.value:
            raise ValidationError({"rating": ["Only delivered orders can carry a rating"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        *,
        order_number: str,
        tracking_number: str,
        store_id: str,
        user_id: str,
        address_id: str,
        phone_number: str,
        items_data: list[dict],
        delivery_fee: float,
        now: datetime,
        username: str | None = None,
        delivery_zone: str | None = None,
        payment_method: str | None = None,
        notes: str | None = None,
        requested_delivery_time: datetime | None = None,
    ):
        """Create a PENDING order with totals derived from the priced items.

        Returns the order and the events it raised, like the other operations.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})
        if delivery_fee is None or delivery_fee < 0:
            raise ValidationError({"delivery_fee": ["Delivery fee must be zero or more"]})

        order_day, daily_sequence = split_order_number(order_number)
        items = [OrderItem(**item_data) for item_data in items_data]
        items_price = round(sum(item.line_total for item in items), 2)
        order_total = round(items_price + delivery_fee, 2)

        order = cls(
            order_number=order_number,
            order_day=order_day,
            daily_sequence=daily_sequence,
            tracking_number=tracking_number,
            store_id=store_id,
            user_id=user_id,
            address_id=address_id,
            username=username,
            phone_number=phone_number,
            delivery_zone=delivery_zone,
            items=items,
            items_price=items_price,
            delivery_fee=delivery_fee,
            order_total=order_total,
            payment_method=payment_method or PaymentMethod.CASH.value,
            notes=notes,
            requested_delivery_time=requested_delivery_time,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        event = OrderPlaced(
            order_id=str(order.id),
            order_number=order_number,
            tracking_number=tracking_number,
            store_id=str(store_id),
            user_id=str(user_id),
            status=OrderStatus.PENDING.value,
            items_price=items_price,
            delivery_fee=delivery_fee,
            order_total=order_total,
            placed_at=now,
        )
        order.raise_(event)
        return order, [event]

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _VALID_TRANSITIONS.get(self.current_status, set())

    def _assert_can_transition(self, target: OrderStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidTransition(
                {"status": [f"Cannot transition from {self.status} to {target.value}"]}
            )

    def assert_actor_may(self, target: OrderStatus, actor: Actor) -> None:
        if actor.role not in _TRANSITION_ROLES.get(target, set()):
            raise NotPermitted(
                {"actor": [f"A {actor.role.value} may not move an order to {target.value}"]}
            )
        if actor.role == ActorRole.CUSTOMER and actor.actor_id and actor.actor_id != str(self.user_id):
            raise NotPermitted({"actor": ["Customers may only act on their own orders"]})
        if actor.role == ActorRole.STORE and actor.actor_id and actor.actor_id != str(self.store_id):
            raise NotPermitted({"actor": ["Stores may only act on their own orders"]})

    def _assert_within_window(self, now: datetime, window_seconds: int) -> None:
        elapsed = (as_utc(now) - as_utc(self.created_at)).total_seconds()
        if elapsed > window_seconds:
            raise WindowExpired(
                {"status": [f"Orders can only be canceled within {window_seconds} seconds of placement"]}
            )

    def _status_changed(self, previous: OrderStatus, actor: Actor | None, now: datetime) -> OrderStatusChanged:
        event = OrderStatusChanged(
            order_id=str(self.id),
            order_number=self.order_number,
            store_id=str(self.store_id),
            user_id=str(self.user_id),
            previous_status=previous.value,
            status=self.status,
            actor_role=actor.role.value if actor else None,
            changed_at=now,
        )
        self.raise_(event)
        return event

    # -------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------
    def transition_to(
        self,
        target: OrderStatus,
        actor: Actor,
        now: datetime,
        cancellation_window: int = 60,
    ) -> list:
        """Move to ACCEPTED, REJECTED, PREPARING or CANCELED.

        READY and DELIVERED have their own entry points because they carry
        the delivery code.
        """
        self._assert_can_transition(target)
        if target in (OrderStatus.READY, OrderStatus.DELIVERED):
            raise InvalidTransition(
                {"status": [f"Orders become {target.value} only through delivery verification"]}
            )
        self.assert_actor_may(target, actor)
        if target == OrderStatus.CANCELED:
            self._assert_within_window(now, cancellation_window)

        previous = self.current_status
        with atomic_change(self):
            self.status = target.value
            self.updated_at = now
        return [self._status_changed(previous, actor, now)]

    def mark_ready(self, code: str, actor: Actor, now: datetime) -> list:
        """Enter READY and attach the freshly minted delivery code."""
        self._assert_can_transition(OrderStatus.READY)
        self.assert_actor_may(OrderStatus.READY, actor)

        previous = self.current_status
        with atomic_change(self):
            self.status = OrderStatus.READY.value
            self.delivery_code = code
            self.updated_at = now
        return [self._status_changed(previous, actor, now)]

    def confirm_delivery(self, submitted_code: str, actor: Actor, now: datetime) -> list:
        """Hand the order over if the submitted code matches, clearing the code."""
        if self.current_status != OrderStatus.READY:
            raise NotReady({"status": [f"Order is {self.status}, not ready for delivery"]})
        self.assert_actor_may(OrderStatus.DELIVERED, actor)
        if not self.delivery_code or str(submitted_code) != self.delivery_code:
            raise CodeMismatch({"delivery_code": ["Delivery code does not match"]})

        previous = self.current_status
        with atomic_change(self):
            self.status = OrderStatus.DELIVERED.value
            self.delivery_code = None
            self.updated_at = now

        changed = self._status_changed(previous, actor, now)
        delivered = OrderDelivered(
            order_id=str(self.id),
            order_number=self.order_number,
            store_id=str(self.store_id),
            user_id=str(self.user_id),
            status=self.status,
            delivered_at=now,
        )
        self.raise_(delivered)
        return [changed, delivered]

    # -------------------------------------------------------------------
    # Rating
    # -------------------------------------------------------------------
    def rate(self, rating: int, actor: Actor, now: datetime, comment: str | None = None) -> list:
        """Attach the customer's 1..5 rating. Allowed once per order."""
        if actor.role != ActorRole.CUSTOMER:
            raise NotPermitted({"actor": ["Only the customer may rate an order"]})
        if actor.actor_id and actor.actor_id != str(self.user_id):
            raise NotPermitted({"actor": ["Customers may only rate their own orders"]})
        if self.current_status != OrderStatus.DELIVERED:
            raise NotDelivered({"status": [f"Order is {self.status}; only delivered orders can be rated"]})
        if self.rating is not None:
            raise AlreadyRated({"rating": ["This order has already been rated"]})
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidRating({"rating": ["Rating must be a whole number between 1 and 5"]})

        with atomic_change(self):
            self.rating = rating
            self.rating_comment = comment
            self.updated_at = now

        event = OrderRated(
            order_id=str(self.id),
            store_id=str(self.store_id),
            user_id=str(self.user_id),
            rating=rating,
            comment=comment,
            rated_at=now,
        )
        self.raise_(event)
        return [event]
