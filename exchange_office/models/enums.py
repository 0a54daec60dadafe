"""
Shared enumerations for database models.

Python enums mapped to database enums mean an invalid debt
type or status is rejected by the database, not just by
request validation.
"""

import enum


class RecordState(str, enum.Enum):
    """Lifecycle of a soft-deletable record."""
    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class DebtType(str, enum.Enum):
    """TAKEN: we borrowed money. GIVEN: we lent money out."""
    TAKEN = "TAKEN"
    GIVEN = "GIVEN"


class DebtStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    RECEIVED = "RECEIVED"


class PaymentType(str, enum.Enum):
    """PAYMENT: we repay a TAKEN debt. RECEIPT: we collect a GIVEN debt."""
    PAYMENT = "PAYMENT"
    RECEIPT = "RECEIPT"


class BillSeries(str, enum.Enum):
    BUY = "BUY"
    SALE = "SALE"
