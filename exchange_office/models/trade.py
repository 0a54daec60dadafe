"""
Buy and sale models.

A buy or a sale is a two-leg exchange: `value` units of the
traded currency against `total_price` units of the payment
currency. Each record is created together with exactly two
treasury movements, one per leg.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, DateTime, Numeric, ForeignKey,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from exchange_office.models.base import Base
from exchange_office.models.enums import RecordState


class _TradeColumns:
    """Columns shared by Buy and Sale."""

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    bill_num: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id"), nullable=False, index=True
    )
    currency_id: Mapped[int] = mapped_column(
        ForeignKey("currencies.id"), nullable=False, index=True
    )
    payment_currency_id: Mapped[int] = mapped_column(
        ForeignKey("currencies.id"), nullable=False
    )
    value: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    # Banknote serial range, recorded for large cash trades
    first_num: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_num: Mapped[str | None] = mapped_column(String(50), nullable=True)
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


class Buy(_TradeColumns, Base):
    """We buy foreign currency from a customer."""

    __tablename__ = "buys"

    customer: Mapped["Customer"] = relationship()
    currency: Mapped["Currency"] = relationship(foreign_keys="Buy.currency_id")
    payment_currency: Mapped["Currency"] = relationship(
        foreign_keys="Buy.payment_currency_id"
    )

    def __repr__(self) -> str:
        return f"<Buy #{self.bill_num} {self.value} @ {self.price}>"


class Sale(_TradeColumns, Base):
    """We sell foreign currency to a customer."""

    __tablename__ = "sales"

    customer: Mapped["Customer"] = relationship()
    currency: Mapped["Currency"] = relationship(foreign_keys="Sale.currency_id")
    payment_currency: Mapped["Currency"] = relationship(
        foreign_keys="Sale.payment_currency_id"
    )

    def __repr__(self) -> str:
        return f"<Sale #{self.bill_num} {self.value} @ {self.price}>"
