"""
Pydantic schemas for debts and debt payments.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from exchange_office.models.enums import DebtType, DebtStatus, PaymentType
from exchange_office.schemas.common import PageMeta


class DebtCreate(BaseModel):
    debt_type: DebtType
    debtor_name: str = Field(min_length=1, max_length=200)
    debtor_phone: str | None = Field(default=None, max_length=50)
    debtor_address: str | None = Field(default=None, max_length=255)
    currency_id: int
    amount: Decimal = Field(gt=0, max_digits=19, decimal_places=4)
    description: str | None = Field(default=None, max_length=1000)


class DebtPaymentCreate(BaseModel):
    # Positivity and the remaining-amount ceiling are checked by the
    # service so both surface as InvalidPaymentAmount.
    amount: Decimal = Field(max_digits=19, decimal_places=4)
    description: str | None = Field(default=None, max_length=1000)


class DebtResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    debt_type: DebtType
    debtor_name: str
    debtor_phone: str | None
    debtor_address: str | None
    currency_id: int
    amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: DebtStatus
    description: str | None
    user_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DebtPaymentResponse(BaseModel):
    id: int
    debt_id: int
    amount: Decimal
    payment_type: PaymentType
    description: str | None
    user_id: int
    movement_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class DebtPaymentResult(BaseModel):
    debt: DebtResponse
    payment: DebtPaymentResponse


class DebtPage(PageMeta):
    items: list[DebtResponse]


class DebtSummary(BaseModel):
    """Outstanding (ACTIVE or PARTIAL) debts for one currency."""
    currency_id: int
    code: str
    total_taken: Decimal
    total_given: Decimal
    count_taken: int
    count_given: int
