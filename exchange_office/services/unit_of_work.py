"""
Unit of work: the transaction boundary for money movements.

Services never commit. A router (or a test) hands the operation
to UnitOfWork.run(), which commits once the whole operation has
succeeded and rolls back on any error, so a buy can never leave
one leg applied and the other not.

Serialization failures reported by the database are retried a
bounded number of times. Domain errors are not retried.
"""

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from exchange_office.config import get_settings
from exchange_office.errors import ConcurrencyConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL: serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_serialization_failure(exc: Exception) -> bool:
    """True if the database rejected the transaction because of a conflict."""
    if isinstance(exc, ConcurrencyConflict):
        return True
    if not isinstance(exc, DBAPIError):
        return False

    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in RETRYABLE_SQLSTATES:
        return True
    # SQLite reports writer contention as a locked database
    return "database is locked" in str(orig).lower()


class UnitOfWork:

    def __init__(self, db: Session, max_attempts: int | None = None):
        self.db = db
        if max_attempts is None:
            max_attempts = get_settings().MAX_TRANSACTION_ATTEMPTS
        self.max_attempts = max(1, max_attempts)

    def run(self, operation: Callable[[], T]) -> T:
        """
        Run `operation` and commit, or roll back everything.

        `operation` must be safe to call again from scratch: on a
        retry it runs against a rolled-back session.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = operation()
                self.db.commit()
                return result
            except Exception as exc:
                self.db.rollback()
                if not is_serialization_failure(exc):
                    raise
                if attempt == self.max_attempts:
                    logger.warning(
                        "Transaction conflict persisted after %d attempt(s): %s",
                        attempt, exc,
                    )
                    raise ConcurrencyConflict(attempt, str(exc)) from exc
                logger.warning(
                    "Transaction conflict on attempt %d/%d, retrying: %s",
                    attempt, self.max_attempts, exc,
                )

        # Unreachable: the loop either returns or raises
        raise ConcurrencyConflict(self.max_attempts)
