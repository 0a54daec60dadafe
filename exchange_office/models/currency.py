"""
Currency model.

A currency row holds the treasury's current balance for that
currency. The balance column is written only by
TreasuryService.mutate(); every change to it is paired with
a TreasuryMovement in the same transaction.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from exchange_office.models.base import Base
from exchange_office.models.enums import RecordState


class Currency(Base):
    """
    A currency held in the treasury.

    Created with a zero balance. Once it has movements it is
    never hard-deleted, only moved to RecordState.DELETED, and
    only when its balance is zero.
    """

    __tablename__ = "currencies"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    state: Mapped[RecordState] = mapped_column(
        SAEnum(RecordState, name="record_state_enum", create_constraint=True),
        nullable=False,
        default=RecordState.ACTIVE,
    )
    created_by: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    movements: Mapped[list["TreasuryMovement"]] = relationship(
        back_populates="currency"
    )

    @property
    def is_active(self) -> bool:
        return self.state == RecordState.ACTIVE

    def __repr__(self) -> str:
        return f"<Currency {self.code} balance={self.balance}>"
