"""Business logic services."""

from exchange_office.services.unit_of_work import UnitOfWork
from exchange_office.services.treasury_service import TreasuryService
from exchange_office.services.currency_service import CurrencyService
from exchange_office.services.bill_number_service import BillNumberService
from exchange_office.services.trade_service import TradeService
from exchange_office.services.debt_service import DebtService

__all__ = [
    "UnitOfWork",
    "TreasuryService",
    "CurrencyService",
    "BillNumberService",
    "TradeService",
    "DebtService",
]
