"""FastAPI routes for the Ordering domain: intake, lifecycle, delivery, rating and queries.

The acting party is read from ``X-Actor-Role`` (customer, store, courier)
and ``X-Actor-Id`` headers set by the upstream gateway after
authentication.
"""

import json

from fastapi import APIRouter, Depends, Header, Query, Response
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    CreateOrderRequest,
    OrderItemSchema,
    OrderListResponse,
    OrderPageResponse,
    OrderResponse,
    RateOrderRequest,
    RatingResponse,
    UpdateStatusRequest,
    VerifyDeliveryRequest,
)
from ordering.errors import NotPermitted, OrderNotFound
from ordering.order.delivery import DeliveryVerificationService
from ordering.order.intake import OrderIntakeService, PlaceOrder
from ordering.order.order import Actor, ActorRole, Order, OrderStatus
from ordering.order.rating import RatingAggregator
from ordering.order.state_machine import OrderStateMachine
from ordering.utils.config import setting

_MAX_PAGE_SIZE = 100


def current_actor(
    x_actor_role: str | None = Header(default=None),
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    if not x_actor_role:
        raise NotPermitted({"actor": ["X-Actor-Role header is required"]})
    return Actor.of(x_actor_role, x_actor_id)


def order_response(order: Order, reveal_code: bool = False) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        tracking_number=order.tracking_number,
        status=order.status,
        store_id=str(order.store_id),
        user_id=str(order.user_id),
        address_id=str(order.address_id),
        username=order.username,
        phone_number=order.phone_number,
        delivery_zone=order.delivery_zone,
        items=[
            OrderItemSchema(
                product_id=str(item.product_id),
                product_name=item.product_name,
                category_label=item.category_label,
                image_ref=item.image_ref,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in order.items
        ],
        items_price=order.items_price,
        delivery_fee=order.delivery_fee,
        order_total=order.order_total,
        payment_method=order.payment_method,
        notes=order.notes,
        requested_delivery_time=order.requested_delivery_time,
        delivery_code=order.delivery_code if reveal_code else None,
        rating=order.rating,
        rating_comment=order.rating_comment,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def _is_owner(actor: Actor, order: Order) -> bool:
    return actor.role == ActorRole.CUSTOMER and actor.actor_id == str(order.user_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def create_order(body: CreateOrderRequest) -> OrderResponse:
    command = PlaceOrder(
        store_id=body.store_id,
        user_id=body.user_id,
        address_id=body.address_id,
        phone_number=body.phone_number,
        items=json.dumps([item.model_dump() for item in body.items]),
        payment_method=body.payment_method,
        notes=body.notes,
        requested_delivery_time=body.requested_delivery_time,
        delivery_fee=body.delivery_fee,
    )
    order = OrderIntakeService().place_order(command)
    return order_response(order)


@order_router.get("/track/{tracking_number}", response_model=OrderResponse)
async def track_order(tracking_number: str) -> OrderResponse:
    order = current_domain.repository_for(Order).find_by_tracking_number(tracking_number)
    if order is None:
        raise OrderNotFound({"tracking_number": [f"No order with tracking number {tracking_number}"]})
    return order_response(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return order_response(order, reveal_code=_is_owner(actor, order))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    body: UpdateStatusRequest,
    actor: Actor = Depends(current_actor),
) -> OrderResponse:
    order = OrderStateMachine().transition(order_id, body.status, actor)
    return order_response(order, reveal_code=order.status == OrderStatus.READY.value)


@order_router.post("/{order_id}/ready", response_model=OrderResponse)
async def mark_order_ready(order_id: str, actor: Actor = Depends(current_actor)) -> OrderResponse:
    order = DeliveryVerificationService().mark_ready(order_id, actor)
    return order_response(order, reveal_code=True)


@order_router.post("/{order_id}/verify", response_model=OrderResponse)
async def verify_delivery(
    order_id: str,
    body: VerifyDeliveryRequest,
    actor: Actor = Depends(current_actor),
) -> OrderResponse:
    order = DeliveryVerificationService().verify_and_complete(order_id, body.code, actor)
    return order_response(order)


@order_router.post("/{order_id}/rating", response_model=RatingResponse)
async def rate_order(
    order_id: str,
    body: RateOrderRequest,
    actor: Actor = Depends(current_actor),
) -> RatingResponse:
    aggregate = RatingAggregator().rate_order(order_id, body.rating, actor, comment=body.comment)
    return RatingResponse(
        order_id=order_id,
        rating=body.rating,
        store_id=aggregate["store_id"],
        store_rating=aggregate["rating"],
        store_rating_count=aggregate["rating_count"],
    )


@order_router.delete("/{order_id}", status_code=204)
async def purge_order(order_id: str, actor: Actor = Depends(current_actor)) -> Response:
    OrderStateMachine().purge(order_id, actor)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Store Router
# ---------------------------------------------------------------------------
store_router = APIRouter(prefix="/stores", tags=["stores"])


@store_router.get("/{store_id}/orders", response_model=OrderPageResponse)
async def list_store_orders(
    store_id: str,
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1, le=_MAX_PAGE_SIZE),
) -> OrderPageResponse:
    size = page_size or int(setting("STORE_ORDERS_PAGE_SIZE"))
    orders, total = current_domain.repository_for(Order).page_for_store(store_id, page, size)
    return OrderPageResponse(
        orders=[order_response(order) for order in orders],
        page=page,
        page_size=size,
        total=total,
    )


@store_router.get("/{store_id}/orders/pending", response_model=OrderListResponse)
async def list_pending_store_orders(store_id: str) -> OrderListResponse:
    orders = current_domain.repository_for(Order).pending_for_store(store_id)
    return OrderListResponse(orders=[order_response(order) for order in orders])


# ---------------------------------------------------------------------------
# Customer Router
# ---------------------------------------------------------------------------
customer_router = APIRouter(prefix="/customers", tags=["customers"])


@customer_router.get("/{user_id}/orders", response_model=OrderListResponse)
async def list_customer_orders(
    user_id: str,
    scope: str = Query(default="active", pattern="^(active|all)$"),
    actor: Actor = Depends(current_actor),
) -> OrderListResponse:
    if actor.role == ActorRole.CUSTOMER and actor.actor_id and actor.actor_id != user_id:
        raise NotPermitted({"actor": ["Customers may only list their own orders"]})

    orders = current_domain.repository_for(Order).for_customer(user_id, active_only=scope == "active")
    return OrderListResponse(orders=[order_response(order, reveal_code=_is_owner(actor, order)) for order in orders])
