"""
Pydantic schemas for buys and sales.

Both directions share one request shape: `value` units of the
traded currency at `price`, paid in `payment_currency_id`.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from exchange_office.models.enums import RecordState
from exchange_office.schemas.common import PageMeta


class TradeCreate(BaseModel):
    customer_id: int
    currency_id: int
    payment_currency_id: int
    value: Decimal = Field(gt=0, max_digits=19, decimal_places=4)
    price: Decimal = Field(gt=0, max_digits=19, decimal_places=4)
    total_price: Decimal = Field(gt=0, max_digits=19, decimal_places=4)
    first_num: str | None = Field(default=None, max_length=50)
    last_num: str | None = Field(default=None, max_length=50)


class TradeResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    bill_num: str
    customer_id: int
    currency_id: int
    payment_currency_id: int
    value: Decimal
    price: Decimal
    total_price: Decimal
    first_num: str | None
    last_num: str | None
    user_id: int
    state: RecordState
    created_at: datetime

    model_config = {"from_attributes": True}


class TradePage(PageMeta):
    items: list[TradeResponse]


class NextBillNumberResponse(BaseModel):
    next_bill_number: str
