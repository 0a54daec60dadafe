"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from exchange_office.models.base import Base
from exchange_office.models.enums import (
    RecordState,
    DebtType,
    DebtStatus,
    PaymentType,
    BillSeries,
)
from exchange_office.models.currency import Currency
from exchange_office.models.treasury_movement import TreasuryMovement
from exchange_office.models.customer import Customer
from exchange_office.models.debt import Debt, DebtPayment
from exchange_office.models.trade import Buy, Sale
from exchange_office.models.bill_counter import BillCounter

__all__ = [
    "Base",
    "RecordState",
    "DebtType",
    "DebtStatus",
    "PaymentType",
    "BillSeries",
    "Currency",
    "TreasuryMovement",
    "Customer",
    "Debt",
    "DebtPayment",
    "Buy",
    "Sale",
    "BillCounter",
]
