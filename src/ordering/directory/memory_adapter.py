"""In-memory directory: deterministic collaborator lookups for development and testing.

Records are plain dicts keyed by id. Seed it programmatically with the
``add_*`` helpers or from a JSON document shaped like::

    {
        "stores": [{"id": "s1", "name": "Corner Deli", "delivery_zones": {"Downtown": 3.0}}],
        "addresses": [{"id": "a1", "user_id": "u1", "zone": "Downtown"}],
        "products": [{"id": "p1", "store_id": "s1", "name": "Bagel", "price": 2.5}],
        "users": [{"id": "u1", "username": "sam", "phone_number": "+15550100"}]
    }
"""

import json
from pathlib import Path

import structlog

from ordering.directory.port import DirectoryPort
from ordering.errors import (
    AddressNotFound,
    InternalError,
    ProductNotFound,
    StoreNotFound,
    UserNotFound,
)

logger = structlog.get_logger(__name__)


class InMemoryDirectory(DirectoryPort):
    """Directory backed by dicts. Always available unless configured to fail."""

    def __init__(self):
        self.stores: dict[str, dict] = {}
        self.addresses: dict[str, dict] = {}
        self.products: dict[str, dict] = {}
        self.users: dict[str, dict] = {}
        self.should_fail = False
        self.failure_reason = "Directory unavailable"

    def configure(self, should_fail: bool = False, failure_reason: str = "Directory unavailable"):
        """Configure the directory to simulate an outage."""
        self.should_fail = should_fail
        self.failure_reason = failure_reason

    def reset(self):
        self.stores.clear()
        self.addresses.clear()
        self.products.clear()
        self.users.clear()
        self.configure()

    # -------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------
    def add_store(
        self,
        store_id: str,
        name: str = "",
        category: str | None = None,
        rating: float = 0.0,
        rating_count: int = 0,
        delivery_zones: dict[str, float] | None = None,
    ) -> dict:
        store = {
            "id": store_id,
            "name": name,
            "category": category,
            "rating": rating,
            "rating_count": rating_count,
            "delivery_zones": dict(delivery_zones or {}),
        }
        self.stores[store_id] = store
        return store

    def add_address(
        self,
        address_id: str,
        user_id: str | None = None,
        zone: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        details: str | None = None,
    ) -> dict:
        address = {
            "id": address_id,
            "user_id": user_id,
            "zone": zone,
            "latitude": latitude,
            "longitude": longitude,
            "details": details,
        }
        self.addresses[address_id] = address
        return address

    def add_product(
        self,
        product_id: str,
        price: float,
        name: str = "",
        store_id: str | None = None,
        category: str | None = None,
        image: str | None = None,
    ) -> dict:
        product = {
            "id": product_id,
            "store_id": store_id,
            "name": name,
            "price": price,
            "category": category,
            "image": image,
        }
        self.products[product_id] = product
        return product

    def add_user(
        self,
        user_id: str,
        username: str | None = None,
        phone_number: str | None = None,
        role: str = "customer",
    ) -> dict:
        user = {"id": user_id, "username": username, "phone_number": phone_number, "role": role}
        self.users[user_id] = user
        return user

    def load(self, seed: dict) -> None:
        for store in seed.get("stores", []):
            self.add_store(store.pop("id"), **store)
        for address in seed.get("addresses", []):
            self.add_address(address.pop("id"), **address)
        for product in seed.get("products", []):
            self.add_product(product.pop("id"), **product)
        for user in seed.get("users", []):
            self.add_user(user.pop("id"), **user)

    def load_file(self, path: str) -> None:
        seed = json.loads(Path(path).read_text())
        self.load(seed)
        logger.info(
            "Directory seeded from file",
            path=path,
            stores=len(self.stores),
            products=len(self.products),
        )

    # -------------------------------------------------------------------
    # Port
    # -------------------------------------------------------------------
    def _check_available(self) -> None:
        if self.should_fail:
            raise InternalError({"directory": [self.failure_reason]})

    def get_store(self, store_id: str) -> dict:
        self._check_available()
        store = self.stores.get(str(store_id))
        if store is None:
            raise StoreNotFound({"store_id": [f"Store {store_id} does not exist"]})
        return dict(store)

    def get_address(self, address_id: str) -> dict:
        self._check_available()
        address = self.addresses.get(str(address_id))
        if address is None:
            raise AddressNotFound({"address_id": [f"Address {address_id} does not exist"]})
        return dict(address)

    def get_product(self, product_id: str) -> dict:
        self._check_available()
        product = self.products.get(str(product_id))
        if product is None:
            raise ProductNotFound({"product_id": [f"Product {product_id} does not exist"]})
        return dict(product)

    def get_user(self, user_id: str) -> dict:
        self._check_available()
        user = self.users.get(str(user_id))
        if user is None:
            raise UserNotFound({"user_id": [f"User {user_id} does not exist"]})
        return dict(user)

    def delivery_fee(self, store_id: str, zone: str | None) -> float:
        store = self.get_store(store_id)
        if not zone:
            return 0.0
        return float(store["delivery_zones"].get(zone, 0.0))

    def update_store_rating(self, store_id: str, rating: float, rating_count: int) -> None:
        self._check_available()
        store = self.stores.get(str(store_id))
        if store is None:
            raise StoreNotFound({"store_id": [f"Store {store_id} does not exist"]})
        store["rating"] = rating
        store["rating_count"] = rating_count
