"""
Treasury service: the balance mutation protocol.

This service enforces the fundamental rules of the treasury:
1. A currency balance never goes below zero
2. Every balance change is journaled as a TreasuryMovement
3. Journal entries are immutable (append-only)
4. Concurrent changes to the same currency are serialized

No other code writes Currency.balance. Buys, sales, debts and
manual top-ups all go through mutate().
"""

import logging
from decimal import Decimal

from sqlalchemy import Numeric, select, update, func, literal
from sqlalchemy.orm import Session

from exchange_office.errors import InsufficientFunds, InvalidInput, NotFound
from exchange_office.models.currency import Currency
from exchange_office.models.enums import RecordState
from exchange_office.models.treasury_movement import (
    STATEMENT_MAX_LENGTH,
    TreasuryMovement,
)
from exchange_office.schemas.treasury import (
    MovementFilters,
    CurrencySummary,
    IntegrityMismatch,
    IntegrityReport,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# Largest value a Numeric(19, 4) money column can hold
MAX_BALANCE = Decimal("999999999999999.9999")
# Balances are kept to four places; smaller gaps are float rounding on SQLite
RECONCILE_TOLERANCE = Decimal("0.00005")


class TreasuryService:
    """
    All balance changes pass through this service.

    The service takes a database session as a constructor
    argument and never commits. The caller (normally a
    UnitOfWork) owns the transaction boundary, which is what
    makes multi-leg operations all-or-nothing.
    """

    def __init__(self, db: Session):
        self.db = db

    def _get_currency(self, currency_id: int, lock: bool = False) -> Currency:
        stmt = select(Currency).where(Currency.id == currency_id)
        if lock:
            # Row lock held until the enclosing transaction ends
            stmt = stmt.with_for_update()
        currency = self.db.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if not currency or currency.state != RecordState.ACTIVE:
            raise NotFound("Currency", currency_id)
        return currency

    def lock_currencies(self, currency_ids) -> dict[int, Currency]:
        """
        Lock several currency rows for the rest of the transaction.

        Rows are locked in ascending id order so two operations
        touching the same pair of currencies cannot deadlock.
        """
        ids = sorted(set(currency_ids))
        currencies = self.db.execute(
            select(Currency)
            .where(Currency.id.in_(ids))
            .order_by(Currency.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()

        by_id = {c.id: c for c in currencies if c.state == RecordState.ACTIVE}
        for currency_id in ids:
            if currency_id not in by_id:
                raise NotFound("Currency", currency_id)
        return by_id

    def mutate(
        self,
        currency_id: int,
        credit: Decimal,
        debit: Decimal,
        statement: str,
        user_id: int,
        reference: str | None = None,
    ) -> tuple[Decimal, int]:
        """
        Change a currency balance and journal the change.

        new balance = current - credit + debit

        Raises InsufficientFunds if the new balance would be
        negative; nothing is written in that case. The caller
        commits after this returns (or rolls back on error).

        Returns (new_balance, movement_id).
        """
        if not isinstance(credit, Decimal) or not isinstance(debit, Decimal):
            raise InvalidInput(
                f"credit and debit must be Decimal, got "
                f"{type(credit).__name__} and {type(debit).__name__}"
            )
        if credit < 0 or debit < 0:
            raise InvalidInput(
                f"credit and debit must not be negative: "
                f"credit={credit}, debit={debit}"
            )
        if len(statement) > STATEMENT_MAX_LENGTH:
            raise InvalidInput(
                f"Statement is {len(statement)} characters, "
                f"the limit is {STATEMENT_MAX_LENGTH}"
            )

        currency = self._get_currency(currency_id, lock=True)
        current = currency.balance

        if current - credit + debit > MAX_BALANCE:
            raise InvalidInput(
                f"{currency.code} balance would exceed {MAX_BALANCE}"
            )

        if current - credit + debit < 0:
            logger.warning(
                "Rejected mutation on %s: balance=%s credit=%s debit=%s",
                currency.code, current, credit, debit,
            )
            raise InsufficientFunds(currency.code, credit, current)

        # The arithmetic happens in the UPDATE itself, so the write is
        # correct even where the database cannot lock the row on read.
        self.db.execute(
            update(Currency)
            .where(Currency.id == currency_id)
            .values(balance=Currency.balance - credit + debit)
            .execution_options(synchronize_session=False)
        )
        currency = self._get_currency(currency_id)
        new_balance = currency.balance

        if new_balance < 0:
            # Another writer got in between; the unit of work rolls back
            available = new_balance + credit - debit
            logger.warning(
                "Rejected mutation on %s after write: balance=%s credit=%s",
                currency.code, available, credit,
            )
            raise InsufficientFunds(currency.code, credit, available)

        movement = TreasuryMovement(
            currency_id=currency_id,
            open_balance=new_balance + credit - debit,
            credit=credit,
            debit=debit,
            final_balance=new_balance,
            statement=statement,
            user_id=user_id,
            reference=reference,
        )
        self.db.add(movement)
        self.db.flush()

        logger.info(
            "%s: %s -%s +%s = %s (movement %s, user %s)",
            currency.code, movement.open_balance, credit, debit,
            new_balance, movement.id, user_id,
        )
        return new_balance, movement.id

    # --- Read path ---

    def get_movement(self, movement_id: int) -> TreasuryMovement:
        movement = self.db.get(TreasuryMovement, movement_id)
        if not movement:
            raise NotFound("Treasury movement", movement_id)
        return movement

    def list_movements(
        self, filters: MovementFilters
    ) -> tuple[list[TreasuryMovement], int]:
        """Return one page of movements, newest first, and the total count."""
        conditions = []
        if filters.currency_id is not None:
            conditions.append(TreasuryMovement.currency_id == filters.currency_id)
        if filters.search:
            conditions.append(
                TreasuryMovement.statement.ilike(f"%{filters.search}%")
            )
        if filters.start_date is not None:
            conditions.append(TreasuryMovement.created_at >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(TreasuryMovement.created_at <= filters.end_date)

        total = self.db.execute(
            select(func.count(TreasuryMovement.id)).where(*conditions)
        ).scalar_one()

        movements = self.db.execute(
            select(TreasuryMovement)
            .where(*conditions)
            .order_by(
                TreasuryMovement.created_at.desc(),
                TreasuryMovement.id.desc(),
            )
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        ).scalars().all()
        return list(movements), total

    def get_latest_movement(self, currency_id: int) -> TreasuryMovement | None:
        return self.db.execute(
            select(TreasuryMovement)
            .where(TreasuryMovement.currency_id == currency_id)
            .order_by(
                TreasuryMovement.created_at.desc(),
                TreasuryMovement.id.desc(),
            )
            .limit(1)
        ).scalar_one_or_none()

    def get_summary(self) -> list[CurrencySummary]:
        """Totals per active currency."""
        totals = self.db.execute(
            select(
                TreasuryMovement.currency_id,
                func.coalesce(func.sum(TreasuryMovement.credit), 0),
                func.coalesce(func.sum(TreasuryMovement.debit), 0),
                func.count(TreasuryMovement.id),
            ).group_by(TreasuryMovement.currency_id)
        ).all()
        totals_by_currency = {row[0]: row[1:] for row in totals}

        currencies = self.db.execute(
            select(Currency)
            .where(Currency.state == RecordState.ACTIVE)
            .order_by(Currency.code)
        ).scalars().all()

        summary = []
        for currency in currencies:
            total_credit, total_debit, count = totals_by_currency.get(
                currency.id, (0, 0, 0)
            )
            summary.append(CurrencySummary(
                currency_id=currency.id,
                name=currency.name,
                code=currency.code,
                balance=currency.balance,
                total_credit=Decimal(str(total_credit)),
                total_debit=Decimal(str(total_debit)),
                movement_count=count,
            ))
        return summary

    def check_integrity(self) -> dict:
        """
        Reconcile every currency against its journal.

        Checks that each movement's arithmetic holds and that each
        currency balance equals the final balance of its latest
        movement (or zero when it has none). Deleted currencies
        are included.

        Both checks run in the database; only offending rows are
        loaded.
        """
        mismatches: list[IntegrityMismatch] = []
        tolerance = literal(RECONCILE_TOLERANCE, Numeric(19, 5))

        expected_final = (
            TreasuryMovement.open_balance
            - TreasuryMovement.credit
            + TreasuryMovement.debit
        )
        broken = self.db.execute(
            select(TreasuryMovement)
            .where(
                func.abs(TreasuryMovement.final_balance - expected_final)
                > tolerance
            )
            .order_by(TreasuryMovement.id)
        ).scalars().all()
        for movement in broken:
            expected = movement.open_balance - movement.credit + movement.debit
            mismatches.append(IntegrityMismatch(
                currency_id=movement.currency_id,
                movement_id=movement.id,
                detail=(
                    f"final_balance {movement.final_balance} != "
                    f"open - credit + debit = {expected}"
                ),
            ))

        ranked = select(
            TreasuryMovement.currency_id,
            TreasuryMovement.id,
            TreasuryMovement.final_balance,
            func.row_number().over(
                partition_by=TreasuryMovement.currency_id,
                order_by=(
                    TreasuryMovement.created_at.desc(),
                    TreasuryMovement.id.desc(),
                ),
            ).label("position"),
        ).subquery()
        latest = select(ranked).where(ranked.c.position == 1).subquery()

        expected_balance = func.coalesce(latest.c.final_balance, 0)
        drifted = self.db.execute(
            select(
                Currency.id,
                Currency.balance,
                latest.c.id,
                latest.c.final_balance,
            )
            .outerjoin(latest, latest.c.currency_id == Currency.id)
            .where(func.abs(Currency.balance - expected_balance) > tolerance)
            .order_by(Currency.id)
        ).all()
        for currency_id, balance, movement_id, final_balance in drifted:
            expected = final_balance if final_balance is not None else ZERO
            mismatches.append(IntegrityMismatch(
                currency_id=currency_id,
                movement_id=movement_id,
                detail=f"balance {balance} != latest final_balance {expected}",
            ))

        report = IntegrityReport(
            is_balanced=not mismatches, mismatches=mismatches
        )
        if mismatches:
            logger.error(
                "Treasury integrity check found %d mismatch(es)", len(mismatches)
            )
        return report.model_dump()
