"""
Liveness and database reachability.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from exchange_office.config import get_settings
from exchange_office.models.base import get_db

router = APIRouter(tags=["Health"])

SERVICE_NAME = "exchange-office-treasury"


def _database_reachable(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return False
    return True


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Report "degraded" when the treasury database does not answer."""
    reachable = _database_reachable(db)
    return {
        "status": "healthy" if reachable else "degraded",
        "service": SERVICE_NAME,
        "version": get_settings().APP_VERSION,
        "database": "healthy" if reachable else "unhealthy",
    }
