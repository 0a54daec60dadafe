"""
Debt service: IOUs taken and given, and their payments.

Balance effects:

    create TAKEN   we receive money      -> debit  (balance up)
    create GIVEN   we hand money out     -> credit (balance down, must be covered)
    pay TAKEN      we repay              -> credit (balance down, must be covered)
    pay GIVEN      we collect            -> debit  (balance up)

Every payment moves the debt through its state machine
(see models/debt.py) and writes exactly one treasury movement.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from exchange_office.errors import (
    AlreadySettled,
    InvalidInput,
    InvalidPaymentAmount,
    NotActive,
    NotFound,
)
from exchange_office.models.currency import Currency
from exchange_office.models.debt import Debt, DebtPayment, PAYMENT_TYPE
from exchange_office.models.enums import DebtType, DebtStatus, RecordState
from exchange_office.models.treasury_movement import STATEMENT_MAX_LENGTH
from exchange_office.schemas.debt import DebtCreate, DebtSummary
from exchange_office.services.treasury_service import TreasuryService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
OUTSTANDING_STATUSES = (DebtStatus.ACTIVE, DebtStatus.PARTIAL)


def _with_description(statement: str, description: str | None) -> str:
    """Append the description, cut short so the statement fits its column."""
    if not description:
        return statement
    full = f"{statement} - {description}"
    if len(full) <= STATEMENT_MAX_LENGTH:
        return full
    return full[:STATEMENT_MAX_LENGTH - 3] + "..."


class DebtService:

    def __init__(self, db: Session):
        self.db = db
        self.treasury = TreasuryService(db)

    def _get_debt(self, debt_id: int, lock: bool = False) -> Debt:
        stmt = select(Debt).where(Debt.id == debt_id)
        if lock:
            stmt = stmt.with_for_update()
        debt = self.db.execute(
            stmt.execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if not debt or debt.state != RecordState.ACTIVE:
            raise NotFound("Debt", debt_id)
        return debt

    def create_debt(self, request: DebtCreate, user_id: int) -> Debt:
        """
        Record a new debt and move its money.

        The debt starts ACTIVE with nothing paid. A GIVEN debt
        needs the money on hand.
        """
        amount = Decimal(request.amount)
        if amount <= 0:
            raise InvalidInput(f"Amount must be positive, got {amount}")

        currency = self.db.get(Currency, request.currency_id)
        if not currency or currency.state != RecordState.ACTIVE:
            raise NotFound("Currency", request.currency_id)

        debt = Debt(
            debt_type=request.debt_type,
            debtor_name=request.debtor_name,
            debtor_phone=request.debtor_phone,
            debtor_address=request.debtor_address,
            currency_id=request.currency_id,
            amount=amount,
            paid_amount=ZERO,
            remaining_amount=amount,
            status=DebtStatus.ACTIVE,
            description=request.description,
            user_id=user_id,
        )
        self.db.add(debt)
        self.db.flush()

        if request.debt_type == DebtType.TAKEN:
            credit, debit = ZERO, amount
            statement = f"Debt taken from {request.debtor_name}"
        else:
            credit, debit = amount, ZERO
            statement = f"Debt given to {request.debtor_name}"

        self.treasury.mutate(
            request.currency_id,
            credit=credit,
            debit=debit,
            statement=_with_description(statement, request.description),
            user_id=user_id,
            reference=f"DEBT:{debt.id}",
        )

        logger.info(
            "Debt %s %s %s recorded by user %s",
            debt.id, debt.debt_type.value, amount, user_id,
        )
        return debt

    def add_payment(
        self,
        debt_id: int,
        amount: Decimal,
        description: str | None,
        user_id: int,
    ) -> tuple[Debt, DebtPayment]:
        """
        Apply a payment to a debt.

        Rejects payments on settled debts (AlreadySettled) and
        amounts that are not positive or exceed what is left
        (InvalidPaymentAmount). Updates paid/remaining/status,
        appends a DebtPayment and writes one movement.
        """
        debt = self._get_debt(debt_id, lock=True)

        if debt.is_settled:
            raise AlreadySettled(debt.id, debt.status.value)

        if amount <= 0 or amount > debt.remaining_amount:
            raise InvalidPaymentAmount(amount, debt.remaining_amount)

        new_paid = debt.paid_amount + amount
        new_remaining = debt.remaining_amount - amount
        new_status = debt.status_after_payment(new_remaining)
        if not debt.can_transition_to(new_status):
            raise InvalidInput(
                f"Cannot transition debt from {debt.status.value} "
                f"to {new_status.value}"
            )

        payment = DebtPayment(
            debt_id=debt.id,
            amount=amount,
            payment_type=PAYMENT_TYPE[debt.debt_type],
            description=description,
            user_id=user_id,
        )
        self.db.add(payment)
        self.db.flush()

        full = new_remaining == 0
        if debt.debt_type == DebtType.TAKEN:
            credit, debit = amount, ZERO
            kind = "Full settlement" if full else "Partial settlement"
            statement = f"{kind} of debt to {debt.debtor_name}"
        else:
            credit, debit = ZERO, amount
            kind = "Full receipt" if full else "Partial receipt"
            statement = f"{kind} of debt from {debt.debtor_name}"

        _, movement_id = self.treasury.mutate(
            debt.currency_id,
            credit=credit,
            debit=debit,
            statement=_with_description(statement, description),
            user_id=user_id,
            reference=f"DEBT_PAYMENT:{payment.id}",
        )

        payment.movement_id = movement_id
        debt.paid_amount = new_paid
        debt.remaining_amount = new_remaining
        debt.status = new_status
        self.db.flush()

        logger.info(
            "Debt %s payment %s: remaining %s (%s)",
            debt.id, amount, new_remaining, new_status.value,
        )
        return debt, payment

    def delete_debt(self, debt_id: int, user_id: int) -> Debt:
        """
        Soft-delete a debt that has no payments yet.

        The money moved when the debt was created is moved back
        with a reversing movement, so the treasury balance ends
        where it was before the debt existed.
        """
        debt = self._get_debt(debt_id, lock=True)
        if debt.status != DebtStatus.ACTIVE or debt.paid_amount != 0:
            raise NotActive("Debt", debt.id, debt.status.value)

        if debt.debt_type == DebtType.TAKEN:
            credit, debit = debt.amount, ZERO
            statement = f"Reversal of debt taken from {debt.debtor_name}"
        else:
            credit, debit = ZERO, debt.amount
            statement = f"Reversal of debt given to {debt.debtor_name}"

        self.treasury.mutate(
            debt.currency_id,
            credit=credit,
            debit=debit,
            statement=statement,
            user_id=user_id,
            reference=f"DEBT:{debt.id}",
        )

        debt.state = RecordState.DELETED
        self.db.flush()
        logger.info("Debt %s deleted by user %s", debt.id, user_id)
        return debt

    # --- Read path ---

    def get_debt(self, debt_id: int) -> Debt:
        return self._get_debt(debt_id)

    def list_payments(self, debt_id: int) -> list[DebtPayment]:
        debt = self._get_debt(debt_id)
        payments = self.db.execute(
            select(DebtPayment)
            .where(DebtPayment.debt_id == debt.id)
            .order_by(DebtPayment.id)
        ).scalars().all()
        return list(payments)

    def list_debts(
        self,
        page: int = 1,
        limit: int = 20,
        debt_type: DebtType | None = None,
        status: DebtStatus | None = None,
        search: str | None = None,
    ) -> tuple[list[Debt], int]:
        """Outstanding debts first, then newest."""
        conditions = [Debt.state == RecordState.ACTIVE]
        if debt_type is not None:
            conditions.append(Debt.debt_type == debt_type)
        if status is not None:
            conditions.append(Debt.status == status)
        if search:
            pattern = f"%{search}%"
            conditions.append(
                Debt.debtor_name.ilike(pattern) | Debt.description.ilike(pattern)
            )

        total = self.db.execute(
            select(func.count(Debt.id)).where(*conditions)
        ).scalar_one()
        debts = self.db.execute(
            select(Debt)
            .where(*conditions)
            .order_by(
                Debt.remaining_amount.desc(),
                Debt.created_at.desc(),
                Debt.id.desc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(debts), total

    def get_summary(self) -> list[DebtSummary]:
        """Outstanding amounts per currency, split by debt type."""
        rows = self.db.execute(
            select(
                Currency.id,
                Currency.code,
                Debt.debt_type,
                func.coalesce(func.sum(Debt.remaining_amount), 0),
                func.count(Debt.id),
            )
            .select_from(Debt)
            .join(Currency, Currency.id == Debt.currency_id)
            .where(
                Debt.state == RecordState.ACTIVE,
                Debt.status.in_(OUTSTANDING_STATUSES),
            )
            .group_by(Currency.id, Currency.code, Debt.debt_type)
            .order_by(Currency.code)
        ).all()

        by_currency: dict[int, DebtSummary] = {}
        for currency_id, code, debt_type, total, count in rows:
            summary = by_currency.setdefault(currency_id, DebtSummary(
                currency_id=currency_id,
                code=code,
                total_taken=ZERO,
                total_given=ZERO,
                count_taken=0,
                count_given=0,
            ))
            if debt_type == DebtType.TAKEN:
                summary.total_taken = Decimal(str(total))
                summary.count_taken = count
            else:
                summary.total_given = Decimal(str(total))
                summary.count_given = count
        return list(by_currency.values())
