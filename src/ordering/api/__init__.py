"""Ordering domain API package."""

from ordering.api.routes import customer_router, order_router, store_router
from ordering.api.websocket import realtime_router

__all__ = ["order_router", "store_router", "customer_router", "realtime_router"]
