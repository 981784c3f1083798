"""Directory port: the ordering core's view of its collaborators.

Stores, addresses, products and users are owned elsewhere in the
marketplace. The ordering core only looks them up, reads a store's zone
delivery fee, and writes back a store's rating aggregate.
"""

from abc import ABC, abstractmethod


class DirectoryPort(ABC):
    """Abstract interface for directory adapters.

    Lookups raise the matching ``*NotFound`` error from ``ordering.errors``
    for unknown ids and ``InternalError`` when the backing service fails.
    """

    @abstractmethod
    def get_store(self, store_id: str) -> dict:
        """Look up a store.

        Returns:
            dict with keys: id, name, category, rating, rating_count
        """
        ...

    @abstractmethod
    def get_address(self, address_id: str) -> dict:
        """Look up a delivery address.

        Returns:
            dict with keys: id, user_id, zone, latitude, longitude, details
        """
        ...

    @abstractmethod
    def get_product(self, product_id: str) -> dict:
        """Look up a product with its current price.

        Returns:
            dict with keys: id, store_id, name, price, category, image
        """
        ...

    @abstractmethod
    def get_user(self, user_id: str) -> dict:
        """Look up a user.

        Returns:
            dict with keys: id, username, phone_number, role
        """
        ...

    @abstractmethod
    def delivery_fee(self, store_id: str, zone: str | None) -> float:
        """The store's fee for delivering into ``zone``. Unknown zones cost 0."""
        ...

    @abstractmethod
    def update_store_rating(self, store_id: str, rating: float, rating_count: int) -> None:
        """Replace the store's rating aggregate."""
        ...
