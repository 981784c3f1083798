"""WebSocket transport: keeps FastAPI WebSocket connections grouped into rooms.

``emit`` is called from request handling code and must never wait for a
client. Room membership is read and changed only on the event loop the
clients live on; calls from other threads are handed to that loop, and
every send runs as its own task. A client whose send fails is dropped
from all rooms.
"""

import asyncio
from collections import defaultdict

import structlog
from fastapi import WebSocket

from ordering.realtime.port import RealtimeTransport

logger = structlog.get_logger(__name__)


class WebSocketHub(RealtimeTransport):
    def __init__(self):
        self.rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Future] = set()

    async def connect(self, websocket: WebSocket, rooms: list[str]) -> None:
        await websocket.accept()
        self._loop = asyncio.get_running_loop()
        for room in rooms:
            self.rooms[room].add(websocket)
        logger.info("Realtime client connected", rooms=rooms)

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self.rooms):
            self.rooms[room].discard(websocket)
            if not self.rooms[room]:
                del self.rooms[room]

    def members(self, room: str) -> int:
        return len(self.rooms.get(room, ()))

    def emit(self, room: str, event: str, payload: dict) -> None:
        loop = self._loop
        if loop is None:
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._fan_out(room, event, payload)
            return

        # Called from a worker thread: room membership is only touched on the loop
        try:
            loop.call_soon_threadsafe(self._fan_out, room, event, payload)
        except RuntimeError as exc:
            logger.warning("Realtime loop is closed", room=room, realtime_event=event, error=str(exc))

    def _fan_out(self, room: str, event: str, payload: dict) -> None:
        message = {"event": event, "room": room, "data": payload}
        for websocket in list(self.rooms.get(room, ())):
            task = asyncio.get_running_loop().create_task(self._send(websocket, message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _send(self, websocket: WebSocket, message: dict) -> None:
        try:
            await websocket.send_json(message)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Dropping realtime client after failed send",
                room=message["room"],
                realtime_event=message["event"],
                error=str(exc),
            )
            self.disconnect(websocket)
