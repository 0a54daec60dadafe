"""
Exchange Office Treasury: FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

from fastapi import FastAPI

from exchange_office.config import get_settings
from exchange_office.logging_config import configure_logging
from exchange_office.api.health import router as health_router
from exchange_office.api.currencies import router as currencies_router
from exchange_office.api.treasury import router as treasury_router
from exchange_office.api.buys import router as buys_router
from exchange_office.api.sales import router as sales_router
from exchange_office.api.debts import router as debts_router

settings = get_settings()
configure_logging(settings.LOG_LEVEL)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Currency exchange back-office: trades, debts and the treasury ledger",
)

# Register routers
app.include_router(health_router)
app.include_router(currencies_router)
app.include_router(treasury_router)
app.include_router(buys_router)
app.include_router(sales_router)
app.include_router(debts_router)
