"""
Bill number counter.

One row per bill series. Allocating a bill number increments the
row inside the caller's transaction, so a rolled-back buy or sale
gives its number back and two concurrent trades never share one.
"""

from sqlalchemy import BigInteger, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from exchange_office.models.base import Base
from exchange_office.models.enums import BillSeries


class BillCounter(Base):
    __tablename__ = "bill_counters"

    id: Mapped[int] = mapped_column(primary_key=True)
    series: Mapped[BillSeries] = mapped_column(
        SAEnum(BillSeries, name="bill_series_enum", create_constraint=True),
        unique=True,
        nullable=False,
    )
    current_value: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )

    def __repr__(self) -> str:
        return f"<BillCounter {self.series.value}={self.current_value}>"
