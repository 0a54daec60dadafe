"""
Buy API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from exchange_office.api.dependencies import get_current_user_id, get_pagination
from exchange_office.errors import TreasuryError
from exchange_office.models.base import get_db
from exchange_office.models.enums import BillSeries
from exchange_office.schemas.common import PageMeta
from exchange_office.schemas.trade import (
    TradeCreate,
    TradeResponse,
    TradePage,
    NextBillNumberResponse,
)
from exchange_office.services.trade_service import TradeService
from exchange_office.services.unit_of_work import UnitOfWork

router = APIRouter(prefix="/buys", tags=["Buys"])


@router.post("", response_model=TradeResponse, status_code=201)
def create_buy(
    request: TradeCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """
    Buy foreign currency from a customer.

    Adds `value` to the traded currency and takes `total_price`
    out of the payment currency, all or nothing.
    """
    service = TradeService(db)
    try:
        return UnitOfWork(db).run(lambda: service.create_buy(request, user_id))
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.get("", response_model=TradePage)
def list_buys(
    search: str | None = Query(default=None, max_length=50),
    customer_id: int | None = None,
    pagination: tuple[int, int] = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    page, limit = pagination
    items, total = TradeService(db).list_buys(
        page, limit, search=search, customer_id=customer_id
    )
    return TradePage(
        items=[TradeResponse.model_validate(b) for b in items],
        **PageMeta.build(total, page, limit).model_dump(),
    )


@router.get("/next-bill-number", response_model=NextBillNumberResponse)
def next_bill_number(db: Session = Depends(get_db)):
    """Preview the next buy bill number. Nothing is reserved."""
    return NextBillNumberResponse(
        next_bill_number=TradeService(db).next_bill_number(BillSeries.BUY)
    )


@router.get("/{buy_id}", response_model=TradeResponse)
def get_buy(buy_id: int, db: Session = Depends(get_db)):
    try:
        return TradeService(db).get_buy(buy_id)
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.delete("/{buy_id}", response_model=TradeResponse)
def delete_buy(
    buy_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Cancel a buy and reverse both of its treasury legs."""
    service = TradeService(db)
    try:
        return UnitOfWork(db).run(lambda: service.delete_buy(buy_id, user_id))
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)
