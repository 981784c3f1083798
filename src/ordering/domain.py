"""Ordering bounded context: Order Lifecycle & Delivery Verification.

Handles order intake against independent stores, the store-driven
fulfillment pipeline (pending → accepted → preparing → ready → delivered),
proof-of-delivery codes, post-delivery store ratings, and the real-time
fan-out that keeps store and customer clients in sync.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

ordering = Domain(name="ordering")
