"""
Treasury journal API endpoints.

Read-only: movements are written by the operations that cause
them, never through this router.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from exchange_office.api.dependencies import get_pagination
from exchange_office.errors import TreasuryError
from exchange_office.models.base import get_db
from exchange_office.schemas.common import PageMeta
from exchange_office.schemas.treasury import (
    MovementFilters,
    TreasuryMovementResponse,
    TreasuryMovementPage,
    CurrencySummary,
    IntegrityReport,
)
from exchange_office.services.treasury_service import TreasuryService

router = APIRouter(prefix="/treasury", tags=["Treasury"])


@router.get("/movements", response_model=TreasuryMovementPage)
def list_movements(
    currency_id: int | None = None,
    search: str | None = Query(default=None, max_length=100),
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    pagination: tuple[int, int] = Depends(get_pagination),
    db: Session = Depends(get_db),
):
    """List movements, newest first."""
    page, limit = pagination
    items, total = TreasuryService(db).list_movements(MovementFilters(
        currency_id=currency_id,
        search=search,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    ))
    return TreasuryMovementPage(
        items=[TreasuryMovementResponse.model_validate(m) for m in items],
        **PageMeta.build(total, page, limit).model_dump(),
    )


@router.get("/movements/{movement_id}", response_model=TreasuryMovementResponse)
def get_movement(movement_id: int, db: Session = Depends(get_db)):
    try:
        return TreasuryService(db).get_movement(movement_id)
    except TreasuryError as e:
        raise HTTPException(status_code=e.http_status, detail=e.message)


@router.get("/summary", response_model=list[CurrencySummary])
def get_summary(db: Session = Depends(get_db)):
    """Balance, total credit and total debit per currency."""
    return TreasuryService(db).get_summary()


@router.get("/integrity", response_model=IntegrityReport)
def check_integrity(db: Session = Depends(get_db)):
    """Reconcile every currency balance against its journal."""
    return TreasuryService(db).check_integrity()
