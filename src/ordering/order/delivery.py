"""Proof of delivery.

When the store marks an order ready, a four-digit code is minted and
handed to the customer. The courier must present that exact code to
complete the delivery. The flip to DELIVERED is one conditional update
keyed on ``status = ready AND delivery_code = <submitted>``, and it
clears the code, so a code can never be used twice.
"""

import secrets

import structlog
from protean.utils.globals import current_domain

from ordering.errors import CodeMismatch, InvalidTransition, NotReady
from ordering.order.order import Actor, Order, OrderStatus, utcnow
from ordering.order.state_machine import OrderStateMachine
from ordering.realtime import get_notifier

logger = structlog.get_logger(__name__)


def generate_delivery_code() -> str:
    """Uniform over 1000..9999."""
    return str(secrets.randbelow(9000) + 1000)


class DeliveryVerificationService:
    def __init__(
        self,
        repository=None,
        notifier=None,
        state_machine=None,
        clock=utcnow,
        code_factory=generate_delivery_code,
    ):
        self._repository = repository
        self.notifier = notifier or get_notifier()
        self.clock = clock
        self.code_factory = code_factory
        self.state_machine = state_machine or OrderStateMachine(
            repository=repository,
            notifier=self.notifier,
            delivery=self,
            clock=clock,
        )

    @property
    def repository(self):
        return self._repository or current_domain.repository_for(Order)

    def mark_ready(self, order_id: str, actor: Actor) -> Order:
        """Move a PREPARING order to READY with a fresh code.

        Calling it again on a READY order returns the code already issued.
        """
        order = self.repository.get(order_id)
        if order.current_status == OrderStatus.READY:
            order.assert_actor_may(OrderStatus.READY, actor)
            return order

        previous = order.current_status
        code = self.code_factory()
        events = order.mark_ready(code, actor, now=self.clock())
        try:
            self.state_machine.commit(order, previous, events, customer_code=code)
        except InvalidTransition:
            # Lost a race; if the winner made it READY, hand back its code
            current = self.repository.get(order_id)
            if current.current_status == OrderStatus.READY:
                return current
            raise

        logger.info("Delivery code issued", order_id=str(order.id), order_number=order.order_number)
        return order

    def verify_and_complete(self, order_id: str, submitted_code: str, actor: Actor) -> Order:
        """Complete delivery if ``submitted_code`` matches the order's code exactly."""
        order = self.repository.get(order_id)
        try:
            events = order.confirm_delivery(submitted_code, actor, now=self.clock())
        except (NotReady, CodeMismatch) as exc:
            logger.warning(
                "Delivery verification rejected",
                order_id=str(order_id),
                status=order.status,
                reason=type(exc).__name__,
            )
            raise

        self.state_machine.commit(
            order,
            OrderStatus.READY,
            events,
            on_conflict=NotReady,
            delivery_code=str(submitted_code),
        )
        logger.info("Order delivered", order_id=str(order.id), order_number=order.order_number)
        return order
