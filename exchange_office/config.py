"""
Treasury settings.

Everything is read from the environment (or a local .env file)
once per process. Connection strings never live in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_flag(name: str, default: bool = False) -> bool:
    return os.getenv(name, "true" if default else "false").lower() in ("1", "true", "yes")


class Settings:
    """Process-wide treasury settings."""

    APP_NAME: str = "Exchange Office Treasury"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = _env_flag("DEBUG")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = _env_int("PORT", 8000)

    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", "postgresql://localhost:5432/exchange_office"
    )
    # Echo every SQL statement; noisy, for local debugging only
    SQL_ECHO: bool = _env_flag("SQL_ECHO")

    # Attempts per money-moving operation when the database reports
    # a serialization failure or a lock conflict
    MAX_TRANSACTION_ATTEMPTS: int = _env_int("MAX_TRANSACTION_ATTEMPTS", 3)

    # Sale bills look like "S001": prefix plus zero-padded counter
    SALE_BILL_PREFIX: str = os.getenv("SALE_BILL_PREFIX", "S")
    SALE_BILL_WIDTH: int = _env_int("SALE_BILL_WIDTH", 3)

    DEFAULT_PAGE_SIZE: int = _env_int("DEFAULT_PAGE_SIZE", 20)
    MAX_PAGE_SIZE: int = _env_int("MAX_PAGE_SIZE", 200)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
