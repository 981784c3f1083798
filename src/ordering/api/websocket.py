"""WebSocket endpoints for the realtime order feed.

    /ws/orders                 global feed
    /ws/stores/{store_id}      one store's room; send {"action": "sync"} for a snapshot
    /ws/customers/{user_id}    the customer's private room

Any socket answers {"action": "ping"} with a "pong" event.

Delivery is at most once. A client that reconnects asks for a snapshot
instead of expecting missed events to be replayed.
"""

import json

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from ordering.api.routes import order_response
from ordering.domain import ordering
from ordering.order.order import Order
from ordering.realtime import get_transport
from ordering.realtime.notifier import GLOBAL_ROOM, customer_room, store_room
from ordering.realtime.websocket_hub import WebSocketHub

logger = structlog.get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


def _store_snapshot(store_id: str) -> dict:
    with ordering.domain_context():
        orders = current_domain.repository_for(Order).pending_for_store(store_id)
        return {
            "store_id": store_id,
            "orders": [order_response(order).model_dump(mode="json") for order in orders],
        }


async def _serve(websocket: WebSocket, room: str, store_id: str | None = None) -> None:
    hub = get_transport()
    if not isinstance(hub, WebSocketHub):
        await websocket.close(code=1011)
        return

    await hub.connect(websocket, [room])
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"event": "error", "room": room, "data": {"error": "Invalid JSON"}})
                continue

            action = message.get("action") if isinstance(message, dict) else None
            if action == "ping":
                await websocket.send_json({"event": "pong", "room": room, "data": {}})
            elif action == "sync" and store_id is not None:
                snapshot = await run_in_threadpool(_store_snapshot, store_id)
                await websocket.send_json({"event": "orders.snapshot", "room": room, "data": snapshot})
    except WebSocketDisconnect:
        logger.info("Realtime client disconnected", room=room)
    finally:
        hub.disconnect(websocket)


@realtime_router.websocket("/ws/orders")
async def global_feed(websocket: WebSocket):
    await _serve(websocket, GLOBAL_ROOM)


@realtime_router.websocket("/ws/stores/{store_id}")
async def store_feed(websocket: WebSocket, store_id: str):
    await _serve(websocket, store_room(store_id), store_id=store_id)


@realtime_router.websocket("/ws/customers/{user_id}")
async def customer_feed(websocket: WebSocket, user_id: str):
    await _serve(websocket, customer_room(user_id))
