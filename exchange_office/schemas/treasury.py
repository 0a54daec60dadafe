"""
Pydantic schemas for the treasury journal.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from exchange_office.schemas.common import PageMeta


@dataclass
class MovementFilters:
    """Filters for listing treasury movements."""
    currency_id: int | None = None
    search: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    page: int = 1
    limit: int = 20


class TreasuryMovementResponse(BaseModel):
    id: int
    currency_id: int
    open_balance: Decimal
    credit: Decimal
    debit: Decimal
    final_balance: Decimal
    statement: str
    user_id: int
    reference: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TreasuryMovementPage(PageMeta):
    items: list[TreasuryMovementResponse]


class CurrencySummary(BaseModel):
    currency_id: int
    name: str
    code: str
    balance: Decimal
    total_credit: Decimal
    total_debit: Decimal
    movement_count: int


class IntegrityMismatch(BaseModel):
    currency_id: int
    movement_id: int | None
    detail: str


class IntegrityReport(BaseModel):
    is_balanced: bool
    mismatches: list[IntegrityMismatch]
