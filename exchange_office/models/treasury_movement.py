"""
Treasury movement model.

One row per balance change of one currency. Credit is money
leaving the drawer (balance decreases), debit is money coming
in (balance increases). Rows are append-only: never updated,
never deleted. Reversals are new rows.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from exchange_office.models.base import Base

STATEMENT_MAX_LENGTH = 500


class TreasuryMovement(Base):
    """
    Journal entry for a single currency.

    final_balance = open_balance - credit + debit. The
    currency's balance always equals the final_balance of its
    most recent movement.
    """

    __tablename__ = "treasury_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    currency_id: Mapped[int] = mapped_column(
        ForeignKey("currencies.id"), nullable=False, index=True
    )
    open_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    credit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    debit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    final_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    statement: Mapped[str] = mapped_column(
        String(STATEMENT_MAX_LENGTH), nullable=False
    )
    user_id: Mapped[int] = mapped_column(nullable=False, index=True)
    # Business record that caused the movement, e.g. "BUY:12"
    reference: Mapped[str | None] = mapped_column(
        String(50), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )

    currency: Mapped["Currency"] = relationship(back_populates="movements")

    def __repr__(self) -> str:
        return (
            f"<TreasuryMovement {self.currency_id} "
            f"{self.open_balance} -{self.credit} +{self.debit} "
            f"= {self.final_balance}>"
        )
