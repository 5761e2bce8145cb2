"""Logging configuration for the payments service and client."""

import logging
import sys

from app.config import settings

ROOT_LOGGER_NAME = "invoice_payments"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name: str | None = None, level: str | None = None) -> logging.Logger:
    """Configure a stdout logger once; later calls only adjust the level."""
    configured = logging.getLogger(name or ROOT_LOGGER_NAME)
    configured.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

    if not configured.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        configured.addHandler(handler)

    return configured


def get_logger(component: str) -> logging.Logger:
    """Child logger for one component, e.g. ``invoice_payments.drawer``."""
    return logger.getChild(component)


# Default logger instance
logger = setup_logger(ROOT_LOGGER_NAME)
