# fleet_settlement/utils/logger.py
"""
Centralised logging configuration for the settlement engine and scheduler.
Everything goes to the console and to logs/settlement.log; scheduled-job
loggers additionally write to logs/cron.log so nightly runs can be audited
on their own.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from fleet_settlement.config import settings

LOG_LEVEL = settings.LOG_LEVEL.upper()
LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "logs")
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
CRON_LOGGER_PREFIX = "fleet_settlement.services.scheduler"

_configured = False


def _rotating_handler(filename: str, formatter: logging.Formatter) -> RotatingFileHandler:
    # Keeps last 10 × 5MB files
    handler = RotatingFileHandler(
        filename=os.path.join(LOG_DIR, filename),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    handler.setLevel(LOG_LEVEL)
    handler.setFormatter(formatter)
    return handler


def _configure_root_logger():
    global _configured
    if _configured:
        return
    _configured = True

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setLevel(LOG_LEVEL)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(console)
    root.addHandler(_rotating_handler("settlement.log", fmt))

    logging.getLogger(CRON_LOGGER_PREFIX).addHandler(_rotating_handler("cron.log", fmt))


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Call this at the top of every module."""
    _configure_root_logger()
    return logging.getLogger(name)
