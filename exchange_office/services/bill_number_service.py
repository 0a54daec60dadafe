"""
Bill number service: sequential, human-facing bill numbers.

Each series (BUY, SALE) has its own counter row. The counter is
incremented with a single UPDATE inside the caller's transaction:
the row stays locked until commit, so concurrent trades get
distinct numbers, and a rolled-back trade gives its number back.
Reading MAX(bill_num) and adding one is never used.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exchange_office.config import get_settings
from exchange_office.errors import ConcurrencyConflict
from exchange_office.models.bill_counter import BillCounter
from exchange_office.models.enums import BillSeries

logger = logging.getLogger(__name__)


def format_bill_number(series: BillSeries, value: int) -> str:
    """BUY bills are plain numbers ("7"); SALE bills are "S007"."""
    if series == BillSeries.SALE:
        settings = get_settings()
        return f"{settings.SALE_BILL_PREFIX}{value:0{settings.SALE_BILL_WIDTH}d}"
    return str(value)


class BillNumberService:

    def __init__(self, db: Session):
        self.db = db

    def _current(self, series: BillSeries) -> int | None:
        return self.db.execute(
            select(BillCounter.current_value)
            .where(BillCounter.series == series)
        ).scalar_one_or_none()

    def next_value(self, series: BillSeries) -> int:
        """
        Allocate the next number in a series.

        The caller must be inside a transaction; the number is
        only consumed when that transaction commits.
        """
        result = self.db.execute(
            update(BillCounter)
            .where(BillCounter.series == series)
            .values(current_value=BillCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            # First bill of this series
            try:
                self.db.add(BillCounter(series=series, current_value=1))
                self.db.flush()
            except IntegrityError as e:
                # Another transaction created the counter first;
                # the unit of work retries the whole operation.
                raise ConcurrencyConflict(1, f"bill counter {series.value}") from e
            value = 1
        else:
            value = self._current(series)

        logger.debug("Allocated %s bill number %s", series.value, value)
        return value

    def next_bill_number(self, series: BillSeries) -> str:
        return format_bill_number(series, self.next_value(series))

    def peek(self, series: BillSeries) -> str:
        """The number the next bill will get, without consuming it."""
        current = self._current(series) or 0
        return format_bill_number(series, current + 1)
