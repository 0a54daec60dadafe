"""
Debt API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from exchange_office.api.dependencies import get_current_user_id, get_pagination
from exchange_office.errors import TreasuryError
from exchange_office.models.base import get_db
from exchange_office.models.enums import DebtType, DebtStatus
from exchange_office.schemas.common import PageMeta
from exchange_office.schemas.debt import (
    DebtCreate,
    DebtResponse,
    DebtPage,
    DebtPaymentCreate,
    DebtPaymentResponse,
    DebtPaymentResult,
    DebtSummary,
)
from exchange_office.services.debt_service import DebtService
from exchange_office.services.unit_of_work import UnitOfWork

router = APIRouter(prefix="/debts", tags=["Debts"])


@router.post("", response_model=DebtResponse, status_code=201)
def create_debt(
    request: DebtCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """
    Record a debt.

    TAKEN debts add the borrowed money to the currency balance;
    GIVEN debts take the lent money out of it.
    """
    service = DebtService(db)
    try:
        return UnitOfWork(db).run(lambda: service.create_debt(request, user_id))
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.get("", response_model=DebtPage)
def list_debts(
    debt_type: DebtType | None = None,
    status: DebtStatus | None = None,
    search: str | None = Query(default=None, max_length=100),
    pagination: tuple[int, int] = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    page, limit = pagination
    items, total = DebtService(db).list_debts(
        page, limit, debt_type=debt_type, status=status, search=search
    )
    return DebtPage(
        items=[DebtResponse.model_validate(d) for d in items],
        **PageMeta.build(total, page, limit).model_dump(),
    )


@router.get("/summary", response_model=list[DebtSummary])
def get_debts_summary(db: Session = Depends(get_db)):
    """Outstanding debts per currency."""
    return DebtService(db).get_summary()


@router.get("/{debt_id}", response_model=DebtResponse)
def get_debt(debt_id: int, db: Session = Depends(get_db)):
    try:
        return DebtService(db).get_debt(debt_id)
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.post("/{debt_id}/payments", response_model=DebtPaymentResult)
def add_debt_payment(
    debt_id: int,
    request: DebtPaymentCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """
    Pay (TAKEN) or collect (GIVEN) part or all of a debt.

    Payments can't exceed the remaining amount, and a settled
    debt accepts no more payments.
    """
    service = DebtService(db)
    try:
        debt, payment = UnitOfWork(db).run(
            lambda: service.add_payment(
                debt_id, request.amount, request.description, user_id
            )
        )
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)

    return DebtPaymentResult(
        debt=DebtResponse.model_validate(debt),
        payment=DebtPaymentResponse.model_validate(payment),
    )


@router.get("/{debt_id}/payments", response_model=list[DebtPaymentResponse])
def list_debt_payments(debt_id: int, db: Session = Depends(get_db)):
    try:
        return DebtService(db).list_payments(debt_id)
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.delete("/{debt_id}", response_model=DebtResponse)
def delete_debt(
    debt_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """
    Delete a debt that has no payments yet.

    The money moved at creation is moved back.
    """
    service = DebtService(db)
    try:
        return UnitOfWork(db).run(lambda: service.delete_debt(debt_id, user_id))
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)
