"""
Currency service: the currencies the office holds and
manual balance top-ups.

Currencies start at zero. The only way to put money into a
currency without a trade or a debt is add_balance(), which
still goes through the treasury mutation protocol.
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from exchange_office.errors import CurrencyNotEmpty, InvalidInput, NotFound
from exchange_office.models.currency import Currency
from exchange_office.models.enums import RecordState
from exchange_office.schemas.currency import CurrencyCreate, CurrencyUpdate
from exchange_office.services.treasury_service import TreasuryService

logger = logging.getLogger(__name__)

MANUAL_ADDITION_STATEMENT = "Manual balance addition"


class CurrencyService:

    def __init__(self, db: Session):
        self.db = db
        self.treasury = TreasuryService(db)

    def _check_code_free(self, code: str, exclude_id: int | None = None) -> None:
        existing = self.db.execute(
            select(Currency).where(Currency.code == code)
        ).scalar_one_or_none()
        if existing and existing.id != exclude_id:
            raise InvalidInput(f"Currency with code '{code}' already exists")

    def add_currency(self, request: CurrencyCreate, user_id: int) -> Currency:
        """Create a currency with a zero balance."""
        self._check_code_free(request.code)

        currency = Currency(
            name=request.name,
            code=request.code,
            balance=Decimal("0"),
            state=RecordState.ACTIVE,
            created_by=user_id,
        )
        self.db.add(currency)
        self.db.flush()
        logger.info("Currency %s added by user %s", currency.code, user_id)
        return currency

    def get_currency(self, currency_id: int) -> Currency:
        currency = self.db.get(Currency, currency_id)
        if not currency or currency.state != RecordState.ACTIVE:
            raise NotFound("Currency", currency_id)
        return currency

    def list_currencies(self) -> list[Currency]:
        """Active currencies, ordered by code."""
        currencies = self.db.execute(
            select(Currency)
            .where(Currency.state == RecordState.ACTIVE)
            .order_by(Currency.code)
        ).scalars().all()
        return list(currencies)

    def update_currency(
        self, currency_id: int, request: CurrencyUpdate
    ) -> Currency:
        """Rename a currency. The balance is not editable here."""
        currency = self.get_currency(currency_id)
        if request.code is not None and request.code != currency.code:
            self._check_code_free(request.code, exclude_id=currency.id)
            currency.code = request.code
        if request.name is not None:
            currency.name = request.name
        self.db.flush()
        return currency

    def delete_currency(self, currency_id: int) -> Currency:
        """
        Soft-delete a currency.

        Only allowed once its balance is zero. The row stays so
        its movements keep their currency.
        """
        currency = self.treasury.lock_currencies([currency_id])[currency_id]
        if currency.balance != 0:
            raise CurrencyNotEmpty(currency.code, currency.balance)

        currency.state = RecordState.DELETED
        self.db.flush()
        logger.info("Currency %s deleted", currency.code)
        return currency

    def add_balance(
        self, currency_id: int, amount: Decimal, user_id: int
    ) -> tuple[Decimal, int]:
        """
        Add money to a currency by hand.

        One debit mutation; never fails for lack of funds, only
        when the balance would outgrow the money column.
        Returns (new_balance, movement_id).
        """
        if amount <= 0:
            raise InvalidInput(f"Amount must be positive, got {amount}")

        return self.treasury.mutate(
            currency_id,
            credit=Decimal("0"),
            debit=amount,
            statement=MANUAL_ADDITION_STATEMENT,
            user_id=user_id,
        )
