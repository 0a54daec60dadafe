"""
Currency API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from exchange_office.api.dependencies import get_current_user_id
from exchange_office.errors import TreasuryError
from exchange_office.models.base import get_db
from exchange_office.schemas.currency import (
    CurrencyCreate,
    CurrencyUpdate,
    CurrencyResponse,
    BalanceAddRequest,
    BalanceAddResponse,
)
from exchange_office.services.currency_service import CurrencyService
from exchange_office.services.unit_of_work import UnitOfWork

router = APIRouter(prefix="/currencies", tags=["Currencies"])


@router.post("", response_model=CurrencyResponse, status_code=201)
def add_currency(
    request: CurrencyCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Add a currency. It starts with a zero balance."""
    service = CurrencyService(db)
    try:
        return UnitOfWork(db).run(
            lambda: service.add_currency(request, user_id)
        )
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.get("", response_model=list[CurrencyResponse])
def list_currencies(db: Session = Depends(get_db)):
    return CurrencyService(db).list_currencies()


@router.get("/{currency_id}", response_model=CurrencyResponse)
def get_currency(currency_id: int, db: Session = Depends(get_db)):
    try:
        return CurrencyService(db).get_currency(currency_id)
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.patch("/{currency_id}", response_model=CurrencyResponse)
def update_currency(
    currency_id: int,
    request: CurrencyUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Rename a currency. Balances can't be edited through this route."""
    service = CurrencyService(db)
    try:
        return UnitOfWork(db).run(
            lambda: service.update_currency(currency_id, request)
        )
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.delete("/{currency_id}", response_model=CurrencyResponse)
def delete_currency(
    currency_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Soft-delete a currency whose balance is zero."""
    service = CurrencyService(db)
    try:
        return UnitOfWork(db).run(lambda: service.delete_currency(currency_id))
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.post("/{currency_id}/balance", response_model=BalanceAddResponse)
def add_currency_balance(
    currency_id: int,
    request: BalanceAddRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Add money to a currency by hand and journal it."""
    service = CurrencyService(db)
    try:
        new_balance, movement_id = UnitOfWork(db).run(
            lambda: service.add_balance(currency_id, request.amount, user_id)
        )
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)

    return BalanceAddResponse(
        currency_id=currency_id,
        new_balance=new_balance,
        movement_id=movement_id,
    )
