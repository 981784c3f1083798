"""Repository for the Order aggregate.

Every write that changes an existing order is a single conditional update
(``UPDATE ... WHERE id = ? AND status = ?``) so two racing requests can
never both succeed, and a stale reader cannot skip a state. The writes go
through the DAO's claim primitive: a guarded update on SQL providers, and
a read-and-write under the provider lock on the memory provider. Callers
get the number of rows touched back and decide which error to raise on zero.

New orders are inserted under the same lock on the memory provider, which
has no native unique index. SQL providers reject a duplicate number through
the unique indexes on ``order_number`` and ``tracking_number``.
"""

from contextlib import nullcontext
from threading import RLock

from protean.core.repository import BaseRepository
from protean.exceptions import ObjectNotFoundError, TransactionError, ValidationError
from protean.utils.query import Q

from ordering.domain import ordering
from ordering.errors import ConflictError, OrderNotFound
from ordering.order.order import (
    ACTIVE_STATUSES,
    PURGEABLE_STATUSES,
    Order,
    OrderStatus,
)

# Page size used when walking a full result set
_SCAN_PAGE = 500

_UNIQUE_FIELDS = ("order_number", "tracking_number")


@ordering.repository(part_of=Order)
class OrderRepository:
    """Storage access for orders. The only writer of persisted order state."""

    def get(self, identifier) -> Order:
        try:
            return BaseRepository.get(self, identifier)
        except ObjectNotFoundError as exc:
            raise OrderNotFound({"order_id": [f"No order with id {identifier}"]}) from exc

    # -------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------
    def add_new(self, order: Order) -> Order:
        """Insert a brand-new order, raising ConflictError on a number collision."""
        with self.numbering_lock():
            for field_name in _UNIQUE_FIELDS:
                value = getattr(order, field_name)
                if self._dao.query.filter(**{field_name: value}).all().first is not None:
                    raise ConflictError({field_name: [f"{value} is already taken"]})

            try:
                return self.add(order)
            except ValidationError as exc:
                clashes = {key: value for key, value in exc.messages.items() if key in _UNIQUE_FIELDS}
                if clashes:
                    raise ConflictError(clashes) from exc
                raise
            except TransactionError as exc:
                if (exc.extra_info or {}).get("original_exception") == "IntegrityError":
                    raise ConflictError(
                        {"order_number": [f"{order.order_number} or its tracking number is already taken"]}
                    ) from exc
                raise

    def numbering_lock(self):
        """Serializes number allocation and insert on the memory provider.

        A no-op on SQL providers, where the unique indexes reject a duplicate
        and intake retries with a fresh number.
        """
        locks = getattr(self._provider, "_locks", None)
        if locks is None:
            return nullcontext()
        return locks.setdefault(self._provider.name, RLock())

    # -------------------------------------------------------------------
    # Conditional writes
    # -------------------------------------------------------------------
    def apply_transition(self, order: Order, expected: OrderStatus, **guards) -> int:
        """Persist the order's new status (and code) only if it is still in ``expected``."""
        return self._conditional_update(
            Q(id=order.id, status=expected.value, **guards),
            status=order.status,
            delivery_code=order.delivery_code,
            updated_at=order.updated_at,
        )

    def apply_rating(self, order: Order) -> int:
        """Store the rating only on a delivered order that has none yet."""
        return self._conditional_update(
            Q(id=order.id, status=OrderStatus.DELIVERED.value, rating__isnull=True),
            rating=order.rating,
            rating_comment=order.rating_comment,
            updated_at=order.updated_at,
        )

    def purge(self, order_id: str) -> int:
        """Physically delete a rejected or canceled order."""
        return self._dao._delete_top(
            Q(id=order_id, status__in=[status.value for status in PURGEABLE_STATUSES]),
            limit=1,
        )

    def _conditional_update(self, criteria: Q, **values) -> int:
        return len(self._dao._claim(criteria, values, limit=1))

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def latest_sequence_on(self, order_day: str) -> int:
        """Highest sequence already issued for ``order_day`` (``YYMMDD``), or 0."""
        latest = (
            self._dao.query.filter(order_day=order_day)
            .order_by("-daily_sequence")
            .limit(1)
            .all()
            .first
        )
        return latest.daily_sequence if latest is not None else 0

    def find_by_tracking_number(self, tracking_number: str) -> Order | None:
        return self._dao.query.filter(tracking_number=tracking_number).all().first

    def find_by_order_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def page_for_store(self, store_id: str, page: int, page_size: int) -> tuple[list[Order], int]:
        """One page of a store's orders, newest first, with the store's total order count."""
        result = (
            self._dao.query.filter(store_id=store_id)
            .order_by("-created_at")
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return result.items, result.total

    def pending_for_store(self, store_id: str) -> list[Order]:
        return self._scan(
            self._dao.query.filter(store_id=store_id, status=OrderStatus.PENDING.value).order_by("created_at")
        )

    def for_customer(self, user_id: str, active_only: bool = False) -> list[Order]:
        query = self._dao.query.filter(user_id=user_id)
        if active_only:
            query = query.filter(status__in=[status.value for status in ACTIVE_STATUSES])
        return self._scan(query.order_by("-created_at"))

    def rated_for_store(self, store_id: str) -> list[Order]:
        """Every delivered order of the store that carries a rating."""
        delivered = self._scan(
            self._dao.query.filter(store_id=store_id, status=OrderStatus.DELIVERED.value).order_by("created_at")
        )
        return [order for order in delivered if order.rating is not None]

    def _scan(self, query) -> list[Order]:
        """Walk a query page by page so no result set is silently truncated."""
        orders: list[Order] = []
        offset = 0
        while True:
            page = query.offset(offset).limit(_SCAN_PAGE).all().items
            orders.extend(page)
            if len(page) < _SCAN_PAGE:
                return orders
            offset += _SCAN_PAGE
