"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Tables are created before each test and
dropped after it, so no test data persists.
"""

import os

# Point the application at SQLite before any exchange_office import
# reads the settings.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from exchange_office.main import app
from exchange_office.models import Base, Currency, Customer
from exchange_office.models.base import get_db
from exchange_office.services.currency_service import CurrencyService
from exchange_office.schemas.currency import CurrencyCreate


# SQLite stands in for PostgreSQL in tests.
# A file (not :memory:) so that several threads can share it.
TEST_DATABASE_URL = "sqlite:///./test.db"

USER_ID = 1

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test, drop them after.

    autouse=True means every test gets this automatically.
    """
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    """Session factory for tests that need more than one session."""
    return TestSessionLocal


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    get_db is overridden so the app uses the test session.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, headers={"X-User-Id": str(USER_ID)})
    app.dependency_overrides.clear()


@pytest.fixture
def make_currency(db_session):
    """
    Create a committed currency, optionally funded.

    Funding goes through add_balance so the journal reconciles.
    """
    def _make(code: str, balance: str = "0", name: str | None = None) -> Currency:
        service = CurrencyService(db_session)
        currency = service.add_currency(
            CurrencyCreate(name=name or code, code=code), USER_ID
        )
        db_session.commit()
        if Decimal(balance) > 0:
            service.add_balance(currency.id, Decimal(balance), USER_ID)
            db_session.commit()
        return currency

    return _make


@pytest.fixture
def customer(db_session) -> Customer:
    customer = Customer(full_name="Ali Ahmed", phone="0910000000", nationality="LY")
    db_session.add(customer)
    db_session.commit()
    return customer
