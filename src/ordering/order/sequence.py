"""Order and tracking numbers.

Order numbers read ``YYMMDD-NNNN``: the calendar day in the configured
reference timezone, then a 1-based, zero-padded sequence within that day.
The sequence is derived from the highest number already stored for the
day, so two concurrent placements can compute the same candidate. The
unique constraint on ``order_number`` catches that, and intake retries
with a fresh candidate. Numbers are unique, not gap-free.

Past 9999 orders in one day the sequence simply widens to five digits.
"""

from datetime import datetime
from uuid import uuid4
from zoneinfo import ZoneInfo

from protean.utils.globals import current_domain

from ordering.order.order import Order
from ordering.utils.config import setting


class SequenceNumberGenerator:
    """Produces order numbers and tracking numbers."""

    def __init__(self, repository=None, timezone: str | None = None):
        self._repository = repository
        self._timezone = timezone

    @property
    def repository(self):
        return self._repository or current_domain.repository_for(Order)

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self._timezone or setting("ORDER_NUMBER_TIMEZONE"))

    def order_day(self, now: datetime) -> str:
        return now.astimezone(self.timezone).strftime("%y%m%d")

    def next_order_number(self, now: datetime) -> str:
        day = self.order_day(now)
        sequence = self.repository.latest_sequence_on(day) + 1
        return f"{day}-{sequence:04d}"

    def next_tracking_number(self) -> str:
        return str(uuid4())
