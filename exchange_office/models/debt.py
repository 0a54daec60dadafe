"""
Debt (IOU) model.

A debt is money we borrowed (TAKEN) or lent out (GIVEN). It
carries a state machine driven by payments:

    ACTIVE -> PARTIAL -> PAID      (TAKEN debts)
    ACTIVE -> PARTIAL -> RECEIVED  (GIVEN debts)

A single payment that clears the remaining amount goes straight
from ACTIVE to the terminal state. paid_amount + remaining_amount
always equals amount.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, ForeignKey, Text,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from exchange_office.models.base import Base
from exchange_office.models.enums import (
    DebtType,
    DebtStatus,
    PaymentType,
    RecordState,
)


# Allowed status changes; add_payment consults this table
VALID_TRANSITIONS: dict[DebtStatus, set[DebtStatus]] = {
    DebtStatus.ACTIVE: {
        DebtStatus.PARTIAL,
        DebtStatus.PAID,
        DebtStatus.RECEIVED,
    },
    DebtStatus.PARTIAL: {
        DebtStatus.PARTIAL,
        DebtStatus.PAID,
        DebtStatus.RECEIVED,
    },
    DebtStatus.PAID: set(),  # Terminal
    DebtStatus.RECEIVED: set(),  # Terminal
}

TERMINAL_STATUSES = {DebtStatus.PAID, DebtStatus.RECEIVED}

# Which terminal state a fully paid debt lands in
SETTLED_STATUS: dict[DebtType, DebtStatus] = {
    DebtType.TAKEN: DebtStatus.PAID,
    DebtType.GIVEN: DebtStatus.RECEIVED,
}

PAYMENT_TYPE: dict[DebtType, PaymentType] = {
    DebtType.TAKEN: PaymentType.PAYMENT,
    DebtType.GIVEN: PaymentType.RECEIPT,
}


class Debt(Base):
    __tablename__ = "debts"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    debt_type: Mapped[DebtType] = mapped_column(
        SAEnum(DebtType, name="debt_type_enum", create_constraint=True),
        nullable=False,
    )
    debtor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    debtor_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    debtor_address: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    currency_id: Mapped[int] = mapped_column(
        ForeignKey("currencies.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    remaining_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    status: Mapped[DebtStatus] = mapped_column(
        SAEnum(DebtStatus, name="debt_status_enum", create_constraint=True),
        nullable=False,
        default=DebtStatus.ACTIVE,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[int] = mapped_column(nullable=False)
    state: Mapped[RecordState] = mapped_column(
        SAEnum(RecordState, name="record_state_enum", create_constraint=True),
        nullable=False,
        default=RecordState.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    currency: Mapped["Currency"] = relationship()
    payments: Mapped[list["DebtPayment"]] = relationship(
        back_populates="debt", order_by="DebtPayment.id"
    )

    @property
    def is_settled(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, new_status: DebtStatus) -> bool:
        """Check if a status transition is valid for this debt."""
        if new_status in TERMINAL_STATUSES:
            if new_status != SETTLED_STATUS[self.debt_type]:
                return False
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def status_after_payment(self, remaining: Decimal) -> DebtStatus:
        """Status the debt moves to once `remaining` is left to pay."""
        if remaining == 0:
            return SETTLED_STATUS[self.debt_type]
        return DebtStatus.PARTIAL

    def __repr__(self) -> str:
        return (
            f"<Debt {self.debt_type.value} {self.debtor_name} "
            f"{self.paid_amount}/{self.amount} ({self.status.value})>"
        )


class DebtPayment(Base):
    """
    One payment against a debt. Append-only.

    Each payment is tied to exactly one treasury movement.
    """

    __tablename__ = "debt_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    debt_id: Mapped[int] = mapped_column(
        ForeignKey("debts.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    payment_type: Mapped[PaymentType] = mapped_column(
        SAEnum(PaymentType, name="payment_type_enum", create_constraint=True),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[int] = mapped_column(nullable=False)
    movement_id: Mapped[int | None] = mapped_column(
        ForeignKey("treasury_movements.id"), unique=True, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    debt: Mapped["Debt"] = relationship(back_populates="payments")
    movement: Mapped["TreasuryMovement | None"] = relationship()

    def __repr__(self) -> str:
        return f"<DebtPayment {self.payment_type.value} {self.amount}>"
