"""
Tests for the package logger setup.
"""

import logging

from exchange_office.logging_config import configure_logging


def test_configure_logging_is_idempotent():
    logger = configure_logging("DEBUG")
    handlers = len(logger.handlers)

    configure_logging("WARNING")

    assert len(logger.handlers) == handlers
    assert logger.level == logging.WARNING


def test_service_loggers_propagate_to_package_logger():
    configure_logging("INFO")
    child = logging.getLogger("exchange_office.services.treasury_service")

    assert child.getEffectiveLevel() == logging.INFO
