"""
logger.py

Responsibility: Configures Python logging for the whole process once at startup.
Does NOT: write audit entries (see services/log_service.py) or filter records.
"""

from __future__ import annotations

import logging
import sys

# Same "[timestamp] [LEVEL] message" shape as the audit log panel.
LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that are too chatty at DEBUG
_QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler.executors.default")


def configure_logging(level: str = "INFO") -> None:
    """
    Installs a single stdout handler on the root logger.

    Safe to call more than once; previous handlers are replaced so uvicorn
    reloads do not duplicate lines.

    Args:
        level: Root log level name, e.g. "INFO" or "DEBUG". Unknown names
               fall back to INFO.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(handler)

    level_int = getattr(logging, level.upper(), None)
    if not isinstance(level_int, int):
        level_int = logging.INFO
    root.setLevel(level_int)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level_int, logging.WARNING))
