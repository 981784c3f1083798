"""Faker-based data generators for Locust load test scenarios.

Payloads reference the stores, products, users and addresses in
``directory_seed.json``; start the server with
``DIRECTORY_SEED_FILE=loadtests/directory_seed.json`` so they resolve.
"""

import json
import random
from pathlib import Path

from faker import Faker

fake = Faker()

SEED = json.loads((Path(__file__).parent / "directory_seed.json").read_text())

_PRODUCTS_BY_STORE: dict[str, list[str]] = {}
for _product in SEED["products"]:
    _PRODUCTS_BY_STORE.setdefault(_product["store_id"], []).append(_product["id"])

_ADDRESS_BY_USER = {address["user_id"]: address["id"] for address in SEED["addresses"]}


def random_store_id() -> str:
    return random.choice(SEED["stores"])["id"]


def random_user() -> dict:
    return random.choice(SEED["users"])


def order_items(store_id: str, num_items: int = 2) -> list[dict]:
    """Distinct products from one store's menu."""
    products = _PRODUCTS_BY_STORE[store_id]
    chosen = random.sample(products, k=min(num_items, len(products)))
    return [{"product_id": product_id, "quantity": random.randint(1, 3)} for product_id in chosen]


def order_data(store_id: str | None = None, num_items: int = 2) -> dict:
    """Generate CreateOrderRequest payload.

    The delivery fee is left to the store's zone pricing half the time.
    """
    store_id = store_id or random_store_id()
    user = random_user()
    payload = {
        "store_id": store_id,
        "user_id": user["id"],
        "address_id": _ADDRESS_BY_USER[user["id"]],
        "phone_number": user["phone_number"],
        "items": order_items(store_id, num_items),
        "payment_method": random.choice(["cash", "credit_card", "wallet"]),
        "notes": fake.sentence(nb_words=6) if random.random() < 0.3 else None,
    }
    if random.random() < 0.5:
        payload["delivery_fee"] = round(random.uniform(0, 6.0), 2)
    return payload


def rating_data() -> dict:
    """Generate RateOrderRequest payload, skewed towards good ratings."""
    return {
        "rating": random.choices([1, 2, 3, 4, 5], weights=[1, 1, 2, 4, 6])[0],
        "comment": fake.sentence(nb_words=8) if random.random() < 0.4 else None,
    }


def store_headers(store_id: str) -> dict:
    return {"X-Actor-Role": "store", "X-Actor-Id": store_id}


def customer_headers(user_id: str) -> dict:
    return {"X-Actor-Role": "customer", "X-Actor-Id": user_id}


def courier_headers() -> dict:
    return {"X-Actor-Role": "courier", "X-Actor-Id": f"courier-{random.randint(1, 20)}"}
