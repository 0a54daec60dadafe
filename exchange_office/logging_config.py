"""
Logging setup.

Modules log through ``logging.getLogger(__name__)``; this module
attaches a single handler to the package logger at startup.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER_NAME = "exchange_office"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the package logger.

    Safe to call more than once: the handler is only added
    the first time.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if not any(getattr(h, "_exchange_office", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._exchange_office = True
        logger.addHandler(handler)

    return logger
