"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state; nothing is shared across users.
State tracks the ids returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass


@dataclass
class OrderState:
    """Tracks state for a single order lifecycle."""

    order_id: str | None = None
    store_id: str | None = None
    user_id: str | None = None
    delivery_code: str | None = None
    current_status: str = "pending"
