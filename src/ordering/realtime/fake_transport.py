"""Fake realtime transport: records emissions for testing and development.

Configurable failure behavior lets tests prove that a broken transport
never fails the order change that produced the event.
"""

from ordering.realtime.port import RealtimeTransport


class FakeRealtimeTransport(RealtimeTransport):
    """Transport that keeps every emission in memory."""

    def __init__(self):
        self.emitted: list[dict] = []
        self.should_fail = False
        self.failure_reason = "Transport unavailable"

    def configure(self, should_fail: bool = False, failure_reason: str = "Transport unavailable"):
        """Configure the fake transport behavior for testing."""
        self.should_fail = should_fail
        self.failure_reason = failure_reason

    def reset(self):
        self.emitted.clear()
        self.configure()

    def emit(self, room: str, event: str, payload: dict) -> None:
        if self.should_fail:
            raise ConnectionError(self.failure_reason)
        self.emitted.append({"room": room, "event": event, "payload": payload})

    def messages_for(self, room: str, event: str | None = None) -> list[dict]:
        return [
            message
            for message in self.emitted
            if message["room"] == room and (event is None or message["event"] == event)
        ]

    def rooms_for(self, event: str) -> set[str]:
        return {message["room"] for message in self.emitted if message["event"] == event}
