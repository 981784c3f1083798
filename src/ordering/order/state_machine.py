"""Order status transitions.

The aggregate decides whether a transition is allowed; the repository
then applies it with a conditional update on the status the order was
read in. If another request moved the order first, the update touches
no rows and the caller gets InvalidTransition instead of a silent
overwrite.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.errors import InvalidTransition, NotPermitted
from ordering.order.order import (
    PURGEABLE_STATUSES,
    Actor,
    ActorRole,
    Order,
    OrderStatus,
    parse_status,
    utcnow,
)
from ordering.realtime import get_notifier
from ordering.utils.config import setting

logger = structlog.get_logger(__name__)


class OrderStateMachine:
    def __init__(self, repository=None, notifier=None, delivery=None, clock=utcnow):
        self._repository = repository
        self.notifier = notifier or get_notifier()
        self._delivery = delivery
        self.clock = clock

    @property
    def repository(self):
        return self._repository or current_domain.repository_for(Order)

    @property
    def delivery(self):
        if self._delivery is None:
            from ordering.order.delivery import DeliveryVerificationService

            self._delivery = DeliveryVerificationService(
                repository=self._repository,
                notifier=self.notifier,
                clock=self.clock,
            )
        return self._delivery

    def transition(self, order_id: str, target_status: str | OrderStatus, actor: Actor) -> Order:
        """Move an order to ``target_status`` on behalf of ``actor``."""
        target = target_status if isinstance(target_status, OrderStatus) else parse_status(target_status)
        if target == OrderStatus.READY:
            return self.delivery.mark_ready(order_id, actor)

        order = self.repository.get(order_id)
        if target == OrderStatus.DELIVERED:
            raise InvalidTransition(
                {"status": ["Orders are delivered by verifying the delivery code, not by a status update"]}
            )

        previous = order.current_status
        events = order.transition_to(
            target,
            actor,
            now=self.clock(),
            cancellation_window=int(setting("CANCELLATION_WINDOW_SECONDS")),
        )
        self.commit(order, previous, events)
        return order

    def commit(
        self,
        order: Order,
        previous: OrderStatus,
        events: list,
        customer_code: str | None = None,
        on_conflict=InvalidTransition,
        **guards,
    ) -> None:
        """Apply an in-memory transition to storage, then publish its events.

        ``guards`` narrow the conditional update further; when it touches no
        rows ``on_conflict`` is raised.
        """
        if not self.repository.apply_transition(order, previous, **guards):
            raise on_conflict(
                {"status": [f"Order {order.id} is no longer {previous.value}; reload and retry"]}
            )

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            order_number=order.order_number,
            from_status=previous.value,
            to_status=order.status,
            actor_role=events[0].actor_role if events else None,
        )
        self.notifier.publish(events, delivery_code=customer_code)

    def purge(self, order_id: str, actor: Actor) -> None:
        """Physically delete a rejected or canceled order. Store operators only."""
        if actor.role != ActorRole.STORE:
            raise NotPermitted({"actor": ["Only store operators may purge orders"]})

        order = self.repository.get(order_id)
        if actor.actor_id and actor.actor_id != str(order.store_id):
            raise NotPermitted({"actor": ["Stores may only purge their own orders"]})
        if order.current_status not in PURGEABLE_STATUSES:
            raise InvalidTransition(
                {"status": [f"Only rejected or canceled orders can be purged, order is {order.status}"]}
            )
        if not self.repository.purge(order_id):
            raise InvalidTransition({"status": [f"Order {order_id} changed before it could be purged"]})

        logger.info("Order purged", order_id=str(order_id), status=order.status)
