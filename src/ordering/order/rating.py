"""Post-delivery ratings and the store's rating aggregate.

A rating is stored with a conditional update (delivered, not yet rated)
so it lands at most once per order. The store aggregate is then rebuilt
from scratch: every delivered, rated order of the store is scanned and
the mean and count replace whatever the store held before. Two
concurrent recomputes may interleave, but each one writes a value that
is consistent with the rows it read.
"""

import structlog
from protean.utils.globals import current_domain

from ordering.directory import get_directory
from ordering.errors import AlreadyRated
from ordering.order.order import Actor, Order, utcnow

logger = structlog.get_logger(__name__)


class RatingAggregator:
    def __init__(self, repository=None, directory=None, clock=utcnow):
        self._repository = repository
        self.directory = directory or get_directory()
        self.clock = clock

    @property
    def repository(self):
        return self._repository or current_domain.repository_for(Order)

    def rate_order(self, order_id: str, rating: int, actor: Actor, comment: str | None = None) -> dict:
        """Rate a delivered order and refresh its store's aggregate.

        Returns the store's new aggregate: ``{"store_id", "rating", "rating_count"}``.
        """
        order = self.repository.get(order_id)
        order.rate(rating, actor, now=self.clock(), comment=comment)

        if not self.repository.apply_rating(order):
            raise AlreadyRated({"rating": [f"Order {order_id} was rated concurrently"]})

        logger.info("Order rated", order_id=str(order.id), store_id=str(order.store_id), rating=rating)
        return self.recompute(str(order.store_id), just_rated=order)

    def recompute(self, store_id: str, just_rated: Order | None = None) -> dict:
        """Full scan-and-replace of the store's rating and rating count."""
        ratings = {str(o.id): o.rating for o in self.repository.rated_for_store(store_id)}
        if just_rated is not None:
            ratings[str(just_rated.id)] = just_rated.rating

        count = len(ratings)
        average = sum(ratings.values()) / count if count else 0.0
        self.directory.update_store_rating(store_id, average, count)

        logger.info("Store rating recomputed", store_id=store_id, rating=round(average, 3), rating_count=count)
        return {"store_id": store_id, "rating": average, "rating_count": count}
