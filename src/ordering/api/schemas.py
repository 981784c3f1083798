"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
the Order aggregate and its events.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


class OrderItemSchema(BaseModel):
    product_id: str
    product_name: str | None = None
    category_label: str | None = None
    image_ref: str | None = None
    quantity: int
    unit_price: float


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    store_id: str
    user_id: str
    address_id: str
    phone_number: str
    items: list[OrderItemRequest]
    payment_method: str | None = None
    notes: str | None = None
    requested_delivery_time: datetime | None = None
    delivery_fee: float | None = Field(default=None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "store_id": "store-001",
                    "user_id": "user-001",
                    "address_id": "addr-001",
                    "phone_number": "+15550100",
                    "items": [
                        {"product_id": "prod-001", "quantity": 2},
                        {"product_id": "prod-002", "quantity": 1},
                    ],
                    "payment_method": "cash",
                    "delivery_fee": 3.0,
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str


class VerifyDeliveryRequest(BaseModel):
    code: str


class RateOrderRequest(BaseModel):
    rating: int
    comment: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    tracking_number: str
    status: str
    store_id: str
    user_id: str
    address_id: str
    username: str | None = None
    phone_number: str
    delivery_zone: str | None = None
    items: list[OrderItemSchema]
    items_price: float
    delivery_fee: float
    order_total: float
    payment_method: str | None = None
    notes: str | None = None
    requested_delivery_time: datetime | None = None
    delivery_code: str | None = None
    rating: int | None = None
    rating_comment: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class OrderPageResponse(BaseModel):
    orders: list[OrderResponse]
    page: int
    page_size: int
    total: int


class RatingResponse(BaseModel):
    order_id: str
    rating: int
    store_id: str
    store_rating: float
    store_rating_count: int
