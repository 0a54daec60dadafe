"""
Tests for the TreasuryService: the balance mutation protocol.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from exchange_office.errors import InsufficientFunds, InvalidInput, NotFound
from exchange_office.models import Currency, TreasuryMovement
from exchange_office.schemas.treasury import MovementFilters
from exchange_office.services.currency_service import CurrencyService
from exchange_office.services.treasury_service import TreasuryService
from exchange_office.services.unit_of_work import UnitOfWork

USER_ID = 1


def movement_count(db_session, currency_id=None):
    stmt = select(func.count(TreasuryMovement.id))
    if currency_id is not None:
        stmt = stmt.where(TreasuryMovement.currency_id == currency_id)
    return db_session.execute(stmt).scalar_one()


# --- Mutation Tests ---

class TestMutate:

    def test_debit_increases_balance(self, db_session, make_currency):
        usd = make_currency("USD")
        service = TreasuryService(db_session)

        new_balance, movement_id = service.mutate(
            usd.id, credit=Decimal("0"), debit=Decimal("250"),
            statement="Opening float", user_id=USER_ID,
        )
        db_session.commit()

        assert new_balance == Decimal("250")
        movement = service.get_movement(movement_id)
        assert movement.open_balance == Decimal("0")
        assert movement.debit == Decimal("250")
        assert movement.credit == Decimal("0")
        assert movement.final_balance == Decimal("250")
        assert movement.statement == "Opening float"
        assert movement.user_id == USER_ID

    def test_credit_decreases_balance(self, db_session, make_currency):
        usd = make_currency("USD", balance="1000")
        service = TreasuryService(db_session)

        new_balance, movement_id = service.mutate(
            usd.id, credit=Decimal("400"), debit=Decimal("0"),
            statement="Cash out", user_id=USER_ID,
        )
        db_session.commit()

        assert new_balance == Decimal("600")
        movement = service.get_movement(movement_id)
        assert movement.open_balance == Decimal("1000")
        assert movement.final_balance == Decimal("600")

    def test_credit_to_exactly_zero_is_allowed(self, db_session, make_currency):
        usd = make_currency("USD", balance="100")
        service = TreasuryService(db_session)

        new_balance, _ = service.mutate(
            usd.id, credit=Decimal("100"), debit=Decimal("0"),
            statement="Empty drawer", user_id=USER_ID,
        )
        db_session.commit()

        assert new_balance == Decimal("0")

    def test_reference_is_recorded(self, db_session, make_currency):
        usd = make_currency("USD")
        service = TreasuryService(db_session)

        _, movement_id = service.mutate(
            usd.id, credit=Decimal("0"), debit=Decimal("5"),
            statement="Tagged", user_id=USER_ID, reference="BUY:42",
        )
        db_session.commit()

        assert service.get_movement(movement_id).reference == "BUY:42"

    def test_mutate_does_not_commit(self, db_session, make_currency):
        usd = make_currency("USD")
        service = TreasuryService(db_session)

        service.mutate(
            usd.id, credit=Decimal("0"), debit=Decimal("75"),
            statement="Rolled back", user_id=USER_ID,
        )
        db_session.rollback()

        assert db_session.get(Currency, usd.id).balance == Decimal("0")
        assert movement_count(db_session, usd.id) == 0


class TestMutateFailures:

    def test_overdraw_raises_insufficient_funds(self, db_session, make_currency):
        usd = make_currency("USD", balance="100")
        service = TreasuryService(db_session)

        with pytest.raises(InsufficientFunds, match="Insufficient USD balance") as exc:
            service.mutate(
                usd.id, credit=Decimal("100.01"), debit=Decimal("0"),
                statement="Too much", user_id=USER_ID,
            )
        assert exc.value.required == Decimal("100.01")
        assert exc.value.available == Decimal("100")

    def test_failed_mutation_writes_nothing(self, db_session, make_currency):
        usd = make_currency("USD", balance="100")
        service = TreasuryService(db_session)
        before = movement_count(db_session, usd.id)

        with pytest.raises(InsufficientFunds):
            UnitOfWork(db_session).run(lambda: service.mutate(
                usd.id, credit=Decimal("500"), debit=Decimal("0"),
                statement="Too much", user_id=USER_ID,
            ))

        assert db_session.get(Currency, usd.id).balance == Decimal("100")
        assert movement_count(db_session, usd.id) == before

    def test_negative_amounts_rejected(self, db_session, make_currency):
        usd = make_currency("USD", balance="100")
        service = TreasuryService(db_session)

        with pytest.raises(InvalidInput, match="must not be negative"):
            service.mutate(
                usd.id, credit=Decimal("-5"), debit=Decimal("0"),
                statement="Sneaky", user_id=USER_ID,
            )

    def test_unknown_currency_raises_not_found(self, db_session):
        service = TreasuryService(db_session)

        with pytest.raises(NotFound, match="Currency 999 not found"):
            service.mutate(
                999, credit=Decimal("0"), debit=Decimal("1"),
                statement="Nowhere", user_id=USER_ID,
            )

    def test_float_amounts_rejected(self, db_session, make_currency):
        usd = make_currency("USD", balance="100")

        with pytest.raises(InvalidInput, match="must be Decimal"):
            TreasuryService(db_session).mutate(
                usd.id, credit=0.1, debit=Decimal("0"),
                statement="Float", user_id=USER_ID,
            )

    def test_balance_beyond_column_range_rejected(
        self, db_session, make_currency
    ):
        usd = make_currency("USD", balance="999999999999999")

        with pytest.raises(InvalidInput, match="would exceed"):
            UnitOfWork(db_session).run(lambda: TreasuryService(db_session).mutate(
                usd.id, credit=Decimal("0"), debit=Decimal("1"),
                statement="One too many", user_id=USER_ID,
            ))

        assert db_session.get(Currency, usd.id).balance == Decimal(
            "999999999999999"
        )
        assert movement_count(db_session, usd.id) == 1

    def test_overlong_statement_rejected(self, db_session, make_currency):
        usd = make_currency("USD")
        limit = TreasuryMovement.statement.type.length

        with pytest.raises(InvalidInput, match="limit is"):
            TreasuryService(db_session).mutate(
                usd.id, credit=Decimal("0"), debit=Decimal("1"),
                statement="x" * (limit + 1), user_id=USER_ID,
            )

    def test_deleted_currency_raises_not_found(self, db_session, make_currency):
        eur = make_currency("EUR")
        CurrencyService(db_session).delete_currency(eur.id)
        db_session.commit()

        with pytest.raises(NotFound):
            TreasuryService(db_session).mutate(
                eur.id, credit=Decimal("0"), debit=Decimal("1"),
                statement="Gone", user_id=USER_ID,
            )


class TestLockCurrencies:

    def test_returns_all_requested(self, db_session, make_currency):
        usd = make_currency("USD")
        lyd = make_currency("LYD")

        locked = TreasuryService(db_session).lock_currencies([lyd.id, usd.id])

        assert set(locked) == {usd.id, lyd.id}
        assert locked[usd.id].code == "USD"

    def test_missing_currency_raises(self, db_session, make_currency):
        usd = make_currency("USD")

        with pytest.raises(NotFound, match="Currency 404"):
            TreasuryService(db_session).lock_currencies([usd.id, 404])


# --- Journal Tests ---

class TestReconciliation:

    def test_balance_equals_latest_final_balance(self, db_session, make_currency):
        usd = make_currency("USD", balance="1000")
        service = TreasuryService(db_session)

        for credit, debit in [("200", "0"), ("0", "50.5"), ("300", "0")]:
            service.mutate(
                usd.id, credit=Decimal(credit), debit=Decimal(debit),
                statement="Step", user_id=USER_ID,
            )
            db_session.commit()

        latest = service.get_latest_movement(usd.id)
        assert latest.final_balance == Decimal("550.5")
        assert db_session.get(Currency, usd.id).balance == latest.final_balance

    def test_movements_chain(self, db_session, make_currency):
        usd = make_currency("USD", balance="100")
        service = TreasuryService(db_session)
        service.mutate(
            usd.id, credit=Decimal("40"), debit=Decimal("0"),
            statement="Out", user_id=USER_ID,
        )
        db_session.commit()

        movements = db_session.execute(
            select(TreasuryMovement)
            .where(TreasuryMovement.currency_id == usd.id)
            .order_by(TreasuryMovement.id)
        ).scalars().all()

        for previous, current in zip(movements, movements[1:]):
            assert current.open_balance == previous.final_balance
        for m in movements:
            assert m.final_balance == m.open_balance - m.credit + m.debit

    def test_integrity_report_is_balanced(self, db_session, make_currency):
        make_currency("USD", balance="100")
        make_currency("LYD", balance="5000")

        report = TreasuryService(db_session).check_integrity()

        assert report["is_balanced"] is True
        assert report["mismatches"] == []

    def test_integrity_report_flags_tampered_balance(
        self, db_session, make_currency
    ):
        usd = make_currency("USD", balance="100")
        # Simulate a write that bypassed the mutation protocol
        db_session.get(Currency, usd.id).balance = Decimal("999")
        db_session.commit()

        report = TreasuryService(db_session).check_integrity()

        assert report["is_balanced"] is False
        assert report["mismatches"][0]["currency_id"] == usd.id
        assert "999" in report["mismatches"][0]["detail"]

    def test_integrity_report_flags_broken_movement(
        self, db_session, make_currency
    ):
        usd = make_currency("USD", balance="100")
        movement = TreasuryService(db_session).get_latest_movement(usd.id)
        movement_id = movement.id
        movement.final_balance = Decimal("150")
        db_session.commit()

        report = TreasuryService(db_session).check_integrity()

        assert report["is_balanced"] is False
        broken = [
            m for m in report["mismatches"] if "open - credit + debit" in m["detail"]
        ]
        assert len(broken) == 1
        assert broken[0]["movement_id"] == movement_id

    def test_integrity_report_flags_balance_without_movements(
        self, db_session, make_currency
    ):
        eur = make_currency("EUR")
        db_session.get(Currency, eur.id).balance = Decimal("5")
        db_session.commit()

        report = TreasuryService(db_session).check_integrity()

        (mismatch,) = report["mismatches"]
        assert mismatch["currency_id"] == eur.id
        assert mismatch["movement_id"] is None

    def test_integrity_ignores_other_currencies(self, db_session, make_currency):
        make_currency("USD", balance="100")
        lyd = make_currency("LYD", balance="250.5")
        db_session.get(Currency, lyd.id).balance = Decimal("1")
        db_session.commit()

        report = TreasuryService(db_session).check_integrity()

        assert [m["currency_id"] for m in report["mismatches"]] == [lyd.id]


class TestListMovements:

    def test_newest_first_with_total(self, db_session, make_currency):
        usd = make_currency("USD", balance="10")
        service = TreasuryService(db_session)
        service.mutate(
            usd.id, credit=Decimal("0"), debit=Decimal("20"),
            statement="Second", user_id=USER_ID,
        )
        db_session.commit()

        items, total = service.list_movements(MovementFilters())

        assert total == 2
        assert items[0].statement == "Second"
        assert items[1].statement == "Manual balance addition"

    def test_filter_by_currency(self, db_session, make_currency):
        usd = make_currency("USD", balance="10")
        make_currency("EUR", balance="20")

        items, total = TreasuryService(db_session).list_movements(
            MovementFilters(currency_id=usd.id)
        )

        assert total == 1
        assert items[0].currency_id == usd.id

    def test_search_statement(self, db_session, make_currency):
        usd = make_currency("USD", balance="10")
        TreasuryService(db_session).mutate(
            usd.id, credit=Decimal("0"), debit=Decimal("1"),
            statement="Found a coin under the desk", user_id=USER_ID,
        )
        db_session.commit()

        items, total = TreasuryService(db_session).list_movements(
            MovementFilters(search="coin")
        )

        assert total == 1
        assert "coin" in items[0].statement

    def test_pagination(self, db_session, make_currency):
        usd = make_currency("USD")
        service = CurrencyService(db_session)
        for _ in range(5):
            service.add_balance(usd.id, Decimal("1"), USER_ID)
        db_session.commit()

        items, total = TreasuryService(db_session).list_movements(
            MovementFilters(page=2, limit=2)
        )

        assert total == 5
        assert len(items) == 2


class TestSummary:

    def test_summary_totals(self, db_session, make_currency):
        usd = make_currency("USD", balance="1000")
        TreasuryService(db_session).mutate(
            usd.id, credit=Decimal("300"), debit=Decimal("0"),
            statement="Out", user_id=USER_ID,
        )
        db_session.commit()
        make_currency("EUR")

        summary = {s.code: s for s in TreasuryService(db_session).get_summary()}

        assert summary["USD"].balance == Decimal("700")
        assert summary["USD"].total_debit == Decimal("1000")
        assert summary["USD"].total_credit == Decimal("300")
        assert summary["USD"].movement_count == 2
        assert summary["EUR"].movement_count == 0


# --- Concurrency Tests ---

class TestConcurrentMutations:

    def _withdraw(self, session_factory, currency_id, amount):
        session = session_factory()
        try:
            UnitOfWork(session, max_attempts=5).run(
                lambda: TreasuryService(session).mutate(
                    currency_id, credit=Decimal(amount), debit=Decimal("0"),
                    statement="Concurrent withdrawal", user_id=USER_ID,
                )
            )
            return True
        except InsufficientFunds:
            return False
        finally:
            session.close()

    def test_concurrent_credits_never_overdraw(
        self, db_session, session_factory, make_currency
    ):
        usd = make_currency("USD", balance="1000")
        currency_id = usd.id

        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(
                lambda _: self._withdraw(session_factory, currency_id, "300"),
                range(5),
            ))

        db_session.expire_all()
        assert results.count(True) == 3
        assert db_session.get(Currency, usd.id).balance == Decimal("100")
        assert movement_count(db_session, usd.id) == 4
        assert TreasuryService(db_session).check_integrity()["is_balanced"]
