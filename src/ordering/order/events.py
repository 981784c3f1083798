"""Domain events for the Order aggregate.

Events are immutable facts about a committed order change. They are the
hand-off point to the realtime notifier: the notifier only ever sees
events, never the aggregate. The delivery code is deliberately absent
from every event.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A customer placed a new order against a store."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    tracking_number = String(required=True)
    store_id = Identifier(required=True)
    user_id = Identifier(required=True)
    status = String(required=True)
    items_price = Float(required=True)
    delivery_fee = Float(required=True)
    order_total = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along the fulfillment pipeline."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    store_id = Identifier(required=True)
    user_id = Identifier(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    actor_role = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    """The courier presented the right delivery code and the order was handed over."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    store_id = Identifier(required=True)
    user_id = Identifier(required=True)
    status = String(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRated:
    """The customer rated a delivered order."""

    __version__ = 1

    order_id = Identifier(required=True)
    store_id = Identifier(required=True)
    user_id = Identifier(required=True)
    rating = Integer(required=True)
    comment = Text()
    rated_at = DateTime(required=True)
