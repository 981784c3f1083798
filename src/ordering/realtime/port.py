"""Realtime transport port: abstract interface for pushing events to subscribed clients.

Rooms are plain strings: ``orders`` for the global feed, ``store:<id>``
and ``customer:<id>`` for scoped audiences. Delivery is best effort and
at most once; nothing is queued for clients that are not connected.
"""

from abc import ABC, abstractmethod


class RealtimeTransport(ABC):
    """Abstract interface for realtime transports."""

    @abstractmethod
    def emit(self, room: str, event: str, payload: dict) -> None:
        """Push ``event`` with ``payload`` to every client currently in ``room``.

        Must return without waiting for the clients.
        """
        ...
