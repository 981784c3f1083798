"""Order intake: validate a cart, price it, number it and persist it as PENDING.

Prices come from the product directory at placement time and are copied
onto the order lines, so later catalogue changes never touch placed
orders. On the memory provider the order number is read and the order
inserted under one lock; on SQL providers a collision with a concurrent
placement trips the unique index, and the number is regenerated and the
insert retried.

``PlaceOrder`` is handed straight to ``OrderIntakeService`` rather than
dispatched through ``domain.process``: the order must be durably stored
before its ``order.created`` event goes out.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.directory import get_directory
from ordering.domain import ordering
from ordering.errors import ConflictError, InternalError, ProductNotFound
from ordering.order.order import Order, PaymentMethod, utcnow
from ordering.order.sequence import SequenceNumberGenerator
from ordering.realtime import get_notifier
from ordering.utils.config import setting

logger = structlog.get_logger(__name__)


@ordering.command(part_of=Order)
class PlaceOrder:
    store_id = Identifier()
    user_id = Identifier()
    address_id = Identifier()
    phone_number = String(max_length=32)
    items = Text()  # JSON: list of {"product_id", "quantity"}
    payment_method = String(max_length=20)
    notes = Text()
    requested_delivery_time = DateTime()
    delivery_fee = Float()


_REQUIRED_FIELDS = ("store_id", "user_id", "address_id", "phone_number")


def _items_of(command: PlaceOrder) -> list[dict]:
    if not command.items:
        return []
    try:
        items = json.loads(command.items)
    except json.JSONDecodeError as exc:
        raise ValidationError({"items": ["Items must be a JSON list"]}) from exc
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ValidationError({"items": ["Items must be a JSON list of objects"]})
    return items


class OrderIntakeService:
    def __init__(self, repository=None, directory=None, notifier=None, sequence=None, clock=utcnow):
        self._repository = repository
        self.directory = directory or get_directory()
        self.notifier = notifier or get_notifier()
        self.sequence = sequence or SequenceNumberGenerator(repository=repository)
        self.clock = clock

    @property
    def repository(self):
        return self._repository or current_domain.repository_for(Order)

    def place_order(self, command: PlaceOrder) -> Order:
        items = _items_of(command)
        self._validate(command, items)

        store = self.directory.get_store(command.store_id)
        address = self.directory.get_address(command.address_id)
        user = self.directory.get_user(command.user_id)
        items_data = [self._price_item(command.store_id, item) for item in items]

        if command.delivery_fee is None:
            delivery_fee = self.directory.delivery_fee(store["id"], address.get("zone"))
        else:
            delivery_fee = float(command.delivery_fee)

        max_attempts = int(setting("ORDER_NUMBER_MAX_ATTEMPTS"))
        for attempt in range(1, max_attempts + 1):
            now = self.clock()
            with self.repository.numbering_lock():
                order, placed = Order.place(
                    order_number=self.sequence.next_order_number(now),
                    tracking_number=self.sequence.next_tracking_number(),
                    store_id=store["id"],
                    user_id=command.user_id,
                    address_id=address["id"],
                    username=user.get("username"),
                    phone_number=command.phone_number,
                    delivery_zone=address.get("zone"),
                    items_data=items_data,
                    delivery_fee=delivery_fee,
                    payment_method=command.payment_method,
                    notes=command.notes,
                    requested_delivery_time=command.requested_delivery_time,
                    now=now,
                )
                try:
                    self.repository.add_new(order)
                except ConflictError as exc:
                    logger.warning(
                        "Order number collision, regenerating",
                        order_number=order.order_number,
                        attempt=attempt,
                        conflict=exc.messages,
                    )
                    continue

            logger.info(
                "Order placed",
                order_id=str(order.id),
                order_number=order.order_number,
                store_id=str(order.store_id),
                order_total=order.order_total,
            )
            self.notifier.publish(placed)
            return order

        raise InternalError(
            {"order_number": [f"Could not claim a unique order number after {max_attempts} attempts"]}
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _validate(self, command: PlaceOrder, items: list[dict]) -> None:
        errors = {name: ["is required"] for name in _REQUIRED_FIELDS if not getattr(command, name)}
        if not items:
            errors["items"] = ["An order needs at least one item"]
        for index, item in enumerate(items):
            if not item.get("product_id"):
                errors[f"items.{index}.product_id"] = ["is required"]
            quantity = item.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                errors[f"items.{index}.quantity"] = ["must be a whole number of at least 1"]
        if command.payment_method and command.payment_method not in {m.value for m in PaymentMethod}:
            errors["payment_method"] = [f"Unknown payment method '{command.payment_method}'"]
        if command.delivery_fee is not None and command.delivery_fee < 0:
            errors["delivery_fee"] = ["Delivery fee must be zero or more"]
        if errors:
            raise ValidationError(errors)

    def _price_item(self, store_id: str, item: dict) -> dict:
        product = self.directory.get_product(item["product_id"])
        if product.get("store_id") and str(product["store_id"]) != str(store_id):
            raise ProductNotFound(
                {"product_id": [f"Product {item['product_id']} is not sold by store {store_id}"]}
            )
        return {
            "product_id": product["id"],
            "product_name": product.get("name"),
            "category_label": product.get("category"),
            "image_ref": product.get("image"),
            "quantity": item["quantity"],
            "unit_price": float(product["price"]),
        }
