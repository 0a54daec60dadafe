"""
Trade service: buying and selling foreign currency.

Each trade moves two currencies:

    Buy:   traded currency  +value        (debit)
           payment currency -total_price  (credit, must be covered)
    Sale:  traded currency  -value        (credit, must be covered)
           payment currency +total_price  (debit)

Both legs, the trade record and its bill number are written in
the caller's transaction. If either leg fails, the caller rolls
back and nothing is left behind.
"""

import logging
from decimal import Decimal

from sqlalchemy import select, func, or_
from sqlalchemy.orm import Session

from exchange_office.errors import InsufficientFunds, InvalidInput, NotFound
from exchange_office.models.customer import Customer
from exchange_office.models.enums import BillSeries, RecordState
from exchange_office.models.trade import Buy, Sale
from exchange_office.schemas.trade import TradeCreate
from exchange_office.services.bill_number_service import BillNumberService
from exchange_office.services.treasury_service import TreasuryService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# Money columns are stored with four decimal places
MONEY_QUANTUM = Decimal("0.0001")


def _fmt(amount: Decimal) -> str:
    """Render an amount for a statement without trailing zeros."""
    normalized = Decimal(amount).normalize()
    return f"{normalized:f}"


class TradeService:

    def __init__(self, db: Session):
        self.db = db
        self.treasury = TreasuryService(db)
        self.bills = BillNumberService(db)

    # --- Validation ---

    def _validate_request(self, request: TradeCreate) -> None:
        for field in ("value", "price", "total_price"):
            if getattr(request, field) <= 0:
                raise InvalidInput(f"{field} must be positive")

        if request.currency_id == request.payment_currency_id:
            raise InvalidInput(
                "Traded currency and payment currency must differ"
            )

        expected = (request.value * request.price).quantize(MONEY_QUANTUM)
        if request.total_price.quantize(MONEY_QUANTUM) != expected:
            raise InvalidInput(
                f"total_price {request.total_price} does not match "
                f"value * price = {expected}"
            )

    def _get_customer(self, customer_id: int) -> Customer:
        customer = self.db.get(Customer, customer_id)
        if not customer or customer.state != RecordState.ACTIVE:
            raise NotFound("Customer", customer_id)
        return customer

    # --- Buys ---

    def create_buy(self, request: TradeCreate, user_id: int) -> Buy:
        """
        Record a purchase of foreign currency from a customer.

        The traded currency balance goes up by `value`; the
        payment currency goes down by `total_price` and must
        cover it.
        """
        self._validate_request(request)
        self._get_customer(request.customer_id)
        currencies = self.treasury.lock_currencies(
            [request.currency_id, request.payment_currency_id]
        )
        traded = currencies[request.currency_id]

        bill_num = self.bills.next_bill_number(BillSeries.BUY)
        buy = Buy(
            bill_num=bill_num,
            customer_id=request.customer_id,
            currency_id=request.currency_id,
            payment_currency_id=request.payment_currency_id,
            value=request.value,
            price=request.price,
            total_price=request.total_price,
            first_num=request.first_num,
            last_num=request.last_num,
            user_id=user_id,
        )
        self.db.add(buy)
        self.db.flush()

        reference = f"BUY:{buy.id}"
        label = f"{_fmt(request.value)} {traded.code}"
        self.treasury.mutate(
            request.currency_id,
            credit=ZERO,
            debit=request.value,
            statement=f"Buy {label} - Bill #{bill_num}",
            user_id=user_id,
            reference=reference,
        )
        self.treasury.mutate(
            request.payment_currency_id,
            credit=request.total_price,
            debit=ZERO,
            statement=f"Payment for buy {label} - Bill #{bill_num}",
            user_id=user_id,
            reference=reference,
        )

        logger.info("Buy bill #%s recorded by user %s", bill_num, user_id)
        return buy

    def get_buy(self, buy_id: int) -> Buy:
        buy = self.db.get(Buy, buy_id)
        if not buy or buy.state != RecordState.ACTIVE:
            raise NotFound("Buy", buy_id)
        return buy

    def delete_buy(self, buy_id: int, user_id: int) -> Buy:
        """
        Cancel a buy.

        The record is soft-deleted and both legs are reversed
        with new movements. If the bought currency has already
        been sold on, the reversal fails with InsufficientFunds.
        """
        buy = self.get_buy(buy_id)
        currencies = self.treasury.lock_currencies(
            [buy.currency_id, buy.payment_currency_id]
        )
        traded = currencies[buy.currency_id]
        reference = f"BUY:{buy.id}"

        self.treasury.mutate(
            buy.currency_id,
            credit=buy.value,
            debit=ZERO,
            statement=(
                f"Reversal of buy {_fmt(buy.value)} {traded.code} "
                f"- Bill #{buy.bill_num}"
            ),
            user_id=user_id,
            reference=reference,
        )
        self.treasury.mutate(
            buy.payment_currency_id,
            credit=ZERO,
            debit=buy.total_price,
            statement=f"Refund of payment for buy - Bill #{buy.bill_num}",
            user_id=user_id,
            reference=reference,
        )

        buy.state = RecordState.DELETED
        self.db.flush()
        logger.info("Buy bill #%s cancelled by user %s", buy.bill_num, user_id)
        return buy

    # --- Sales ---

    def create_sale(self, request: TradeCreate, user_id: int) -> Sale:
        """
        Record a sale of foreign currency to a customer.

        The traded currency balance goes down by `value` and must
        cover it; the payment currency goes up by `total_price`.
        """
        self._validate_request(request)
        self._get_customer(request.customer_id)
        currencies = self.treasury.lock_currencies(
            [request.currency_id, request.payment_currency_id]
        )
        traded = currencies[request.currency_id]
        payment = currencies[request.payment_currency_id]

        # Fail before allocating a bill number; mutate() re-checks
        if traded.balance < request.value:
            raise InsufficientFunds(traded.code, request.value, traded.balance)

        bill_num = self.bills.next_bill_number(BillSeries.SALE)
        sale = Sale(
            bill_num=bill_num,
            customer_id=request.customer_id,
            currency_id=request.currency_id,
            payment_currency_id=request.payment_currency_id,
            value=request.value,
            price=request.price,
            total_price=request.total_price,
            first_num=request.first_num,
            last_num=request.last_num,
            user_id=user_id,
        )
        self.db.add(sale)
        self.db.flush()

        reference = f"SALE:{sale.id}"
        self.treasury.mutate(
            request.currency_id,
            credit=request.value,
            debit=ZERO,
            statement=(
                f"Sale {_fmt(request.value)} {traded.code} - Bill #{bill_num}"
            ),
            user_id=user_id,
            reference=reference,
        )
        self.treasury.mutate(
            request.payment_currency_id,
            credit=ZERO,
            debit=request.total_price,
            statement=(
                f"Receipt {_fmt(request.total_price)} {payment.code} "
                f"for sale - Bill #{bill_num}"
            ),
            user_id=user_id,
            reference=reference,
        )

        logger.info("Sale bill #%s recorded by user %s", bill_num, user_id)
        return sale

    def get_sale(self, sale_id: int) -> Sale:
        sale = self.db.get(Sale, sale_id)
        if not sale or sale.state != RecordState.ACTIVE:
            raise NotFound("Sale", sale_id)
        return sale

    def delete_sale(self, sale_id: int, user_id: int) -> Sale:
        """
        Cancel a sale: soft-delete it and reverse both legs.

        The payment currency received must still be on hand.
        """
        sale = self.get_sale(sale_id)
        currencies = self.treasury.lock_currencies(
            [sale.currency_id, sale.payment_currency_id]
        )
        traded = currencies[sale.currency_id]
        reference = f"SALE:{sale.id}"

        self.treasury.mutate(
            sale.currency_id,
            credit=ZERO,
            debit=sale.value,
            statement=(
                f"Reversal of sale {_fmt(sale.value)} {traded.code} "
                f"- Bill #{sale.bill_num}"
            ),
            user_id=user_id,
            reference=reference,
        )
        self.treasury.mutate(
            sale.payment_currency_id,
            credit=sale.total_price,
            debit=ZERO,
            statement=f"Refund of receipt for sale - Bill #{sale.bill_num}",
            user_id=user_id,
            reference=reference,
        )

        sale.state = RecordState.DELETED
        self.db.flush()
        logger.info("Sale bill #%s cancelled by user %s", sale.bill_num, user_id)
        return sale

    # --- Listing ---

    def _list(
        self,
        model,
        page: int,
        limit: int,
        search: str | None = None,
        customer_id: int | None = None,
    ) -> tuple[list, int]:
        """Search matches the bill number or the customer's name."""
        conditions = [model.state == RecordState.ACTIVE]
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(
                model.bill_num.ilike(pattern),
                Customer.full_name.ilike(pattern),
            ))
        if customer_id is not None:
            conditions.append(model.customer_id == customer_id)

        total = self.db.execute(
            select(func.count(model.id))
            .select_from(model)
            .join(Customer, Customer.id == model.customer_id)
            .where(*conditions)
        ).scalar_one()
        records = self.db.execute(
            select(model)
            .join(Customer, Customer.id == model.customer_id)
            .where(*conditions)
            .order_by(model.created_at.desc(), model.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(records), total

    def list_buys(self, page: int = 1, limit: int = 20, **filters):
        return self._list(Buy, page, limit, **filters)

    def list_sales(self, page: int = 1, limit: int = 20, **filters):
        return self._list(Sale, page, limit, **filters)

    def next_bill_number(self, series: BillSeries) -> str:
        return self.bills.peek(series)
