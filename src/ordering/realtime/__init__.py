"""Realtime transport abstraction: room-scoped fan-out of order lifecycle events."""

import os

_transport_instance = None


def get_transport():
    """Return the configured realtime transport (singleton).

    Uses the recording FakeRealtimeTransport by default. The HTTP app runs
    with REALTIME_TRANSPORT=websocket, which serves clients through the
    WebSocketHub.
    """
    global _transport_instance
    if _transport_instance is None:
        transport = os.environ.get("REALTIME_TRANSPORT", "fake")
        if transport == "fake":
            from ordering.realtime.fake_transport import FakeRealtimeTransport

            _transport_instance = FakeRealtimeTransport()
        elif transport == "websocket":
            from ordering.realtime.websocket_hub import WebSocketHub

            _transport_instance = WebSocketHub()
        else:
            raise ValueError(f"Unknown realtime transport: {transport}")
    return _transport_instance


def get_notifier():
    """A RealtimeNotifier bound to the configured transport."""
    from ordering.realtime.notifier import RealtimeNotifier

    return RealtimeNotifier(get_transport())


def reset_transport():
    """Reset the transport singleton (useful for testing)."""
    global _transport_instance
    _transport_instance = None
