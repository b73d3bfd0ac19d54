"""
Logging setup.

Coloured, human-readable lines in development; JSON records for log
aggregators everywhere else.
"""

import logging
import sys
from datetime import datetime, timezone

from pythonjsonlogger import jsonlogger

from statuspage.core.config import settings

JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35;1m",
}


class DevelopmentFormatter(logging.Formatter):
    """
    Example output:
      [2026-02-21 14:05:33.421]  [INFO    ]  statuspage.sync.base  » Subscribed to organizations/…/services
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S.%f"
        )[:-3]
        level = record.levelname
        color = _LEVEL_COLORS.get(level, "")

        msg = record.getMessage()
        if record.exc_info:
            msg = msg + "\n" + self.formatException(record.exc_info)

        return (
            f"{_DIM}[{ts}]{_RESET}  "
            f"{color}{_BOLD}[{level:<8}]{_RESET}  "
            f"{_DIM}{record.name}{_RESET}  » {msg}"
        )


def setup_logging() -> logging.Logger:
    """
    Configure the root logger once at startup.

    Log level is controlled by settings.LOG_LEVEL (default: INFO).
    """
    root = logging.getLogger()

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)

    if settings.ENVIRONMENT == "development":
        handler.setFormatter(DevelopmentFormatter())
    else:
        handler.setFormatter(jsonlogger.JsonFormatter(JSON_FORMAT, json_ensure_ascii=False))

    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL)

    # Suppress chatty third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return root
