"""RealtimeNotifier: turns committed order events into room-scoped messages.

Audiences:
    orders               global feed (store dashboards, couriers)
    store:<store_id>     one store's operators
    customer:<user_id>   the customer who placed the order

The delivery code never goes to ``orders`` or ``store:*``. It is only
attached to the READY status change sent to the ordering customer.

Publishing is fire-and-forget: a transport error is logged and swallowed
so it can never undo or fail the change that produced the event.
"""

import structlog

from ordering.order.events import (
    OrderDelivered,
    OrderPlaced,
    OrderRated,
    OrderStatusChanged,
)
from ordering.order.order import OrderStatus
from ordering.realtime.port import RealtimeTransport

logger = structlog.get_logger(__name__)

GLOBAL_ROOM = "orders"


def store_room(store_id: str) -> str:
    return f"store:{store_id}"


def customer_room(user_id: str) -> str:
    return f"customer:{user_id}"


class RealtimeNotifier:
    def __init__(self, transport: RealtimeTransport):
        self.transport = transport

    def publish(self, events: list, delivery_code: str | None = None) -> None:
        """Fan out each event in order. ``delivery_code`` is only used for READY changes."""
        for event in events:
            if isinstance(event, OrderPlaced):
                self._order_created(event)
            elif isinstance(event, OrderStatusChanged):
                self._status_changed(event, delivery_code)
            elif isinstance(event, OrderDelivered):
                self._order_delivered(event)
            elif isinstance(event, OrderRated):
                # Ratings surface through the store aggregate, not the live feed
                continue
            else:
                logger.debug("No realtime mapping for event", event_type=type(event).__name__)

    # -------------------------------------------------------------------
    # Event kinds
    # -------------------------------------------------------------------
    def _order_created(self, event: OrderPlaced) -> None:
        payload = {
            "order_id": event.order_id,
            "order_number": event.order_number,
            "tracking_number": event.tracking_number,
            "status": event.status,
            "store_id": event.store_id,
            "user_id": event.user_id,
            "order_total": event.order_total,
            "created_at": event.placed_at.isoformat(),
        }
        self._emit(GLOBAL_ROOM, "order.created", payload)
        self._emit(store_room(event.store_id), "order.created", payload)

    def _status_changed(self, event: OrderStatusChanged, delivery_code: str | None) -> None:
        payload = {
            "order_id": event.order_id,
            "order_number": event.order_number,
            "status": event.status,
            "previous_status": event.previous_status,
            "store_id": event.store_id,
            "user_id": event.user_id,
            "updated_at": event.changed_at.isoformat(),
        }
        self._emit(GLOBAL_ROOM, "order.status_changed", payload)
        self._emit(store_room(event.store_id), "order.status_changed", payload)

        private = dict(payload)
        if event.status == OrderStatus.READY.value and delivery_code:
            private["delivery_code"] = delivery_code
        self._emit(customer_room(event.user_id), "order.status_changed", private)

    def _order_delivered(self, event: OrderDelivered) -> None:
        payload = {
            "order_id": event.order_id,
            "order_number": event.order_number,
            "status": event.status,
            "store_id": event.store_id,
            "user_id": event.user_id,
            "delivered_at": event.delivered_at.isoformat(),
        }
        self._emit(GLOBAL_ROOM, "order.delivered", payload)
        self._emit(store_room(event.store_id), "order.delivered", payload)
        self._emit(customer_room(event.user_id), "order.delivered", payload)

    def _emit(self, room: str, name: str, payload: dict) -> None:
        try:
            self.transport.emit(room, name, payload)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Realtime publish failed",
                room=room,
                realtime_event=name,
                order_id=payload.get("order_id"),
                error=str(exc),
            )
