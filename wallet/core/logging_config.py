"""
Logging configuration for the wallet service.

Console logging always; a rotating file handler when LOG_FILE is set.
The "wallet.reconciliation" logger carries every transfer whose outcome
needs a human to look at it (money moved without a record, a failed
reversal, an unknown commit).
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from wallet.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

SERVICE_LOGGER = "wallet"
RECONCILIATION_LOGGER = "wallet.reconciliation"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure the service logger tree. Safe to call more than once.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    log_file = log_file or settings.LOG_FILE

    logger = logging.getLogger(SERVICE_LOGGER)
    logger.setLevel(log_level)
    # Avoid duplicate handlers if setup_logging is called multiple times
    logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Reconciliation events are never filtered below WARNING
    logging.getLogger(RECONCILIATION_LOGGER).setLevel(min(log_level, logging.WARNING))

    # Driver chatter stays out of the service log
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Convenience wrapper to get a named logger.
    """
    return logging.getLogger(name)
