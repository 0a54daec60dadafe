"""
Pydantic schemas for currency operations.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from exchange_office.models.enums import RecordState


class CurrencyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=10)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


class CurrencyUpdate(BaseModel):
    """Name and code only. The balance is never edited directly."""
    name: str | None = Field(default=None, min_length=1, max_length=100)
    code: str | None = Field(default=None, min_length=1, max_length=10)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return v.strip().upper() if v is not None else v


class CurrencyResponse(BaseModel):
    id: int
    name: str
    code: str
    balance: Decimal
    state: RecordState
    created_at: datetime

    model_config = {"from_attributes": True}


class BalanceAddRequest(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=19, decimal_places=4)


class BalanceAddResponse(BaseModel):
    currency_id: int
    new_balance: Decimal
    movement_id: int
