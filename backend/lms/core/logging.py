"""
Logging setup for the API process.

One stdout handler on the root logger. Lines carry timestamp, level,
environment, logger name and message, e.g.:

    2024-05-02 10:15:03 | INFO     | production | lms.services.loan | Loan created: ...
"""

import logging
import sys
from typing import Optional

from lms.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(environment)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that drown the circulation logs at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "asyncio")


class EnvironmentFilter(logging.Filter):
    """Stamps every record with the deployment environment."""

    def __init__(self, environment: str):
        super().__init__()
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        record.environment = self.environment
        return True


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configures the root logger.

    Args:
        level: Logging level. Falls back to LOG_LEVEL.
    """
    settings = get_settings()
    log_level = (level or settings.LOG_LEVEL).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(EnvironmentFilter(settings.ENVIRONMENT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Reload safe
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DB_ECHO else logging.WARNING
    )

    logging.getLogger(__name__).info(f"Logging configured at level: {log_level}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
