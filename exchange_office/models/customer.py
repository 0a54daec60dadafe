"""
Customer model.

Reference data owned by the customer registry. The treasury
only reads it: buys and sales must name an existing, active
customer.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from exchange_office.models.base import Base
from exchange_office.models.enums import RecordState


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    nationality: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[RecordState] = mapped_column(
        SAEnum(RecordState, name="record_state_enum", create_constraint=True),
        nullable=False,
        default=RecordState.ACTIVE,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<Customer {self.full_name}>"
