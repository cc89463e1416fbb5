"""
Logging setup shared by the HTTP host, the background import tasks and the CLI.

Everything goes to stdout as one line per record. Import jobs log per batch,
so chatty third-party loggers (SQLAlchemy engine echo, botocore request
tracing) are held at WARNING regardless of the application level.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS = ("sqlalchemy.engine", "botocore", "boto3", "urllib3")

_is_configured = False


def build_logging_config(level: str) -> Dict[str, Any]:
    """Return the ``dictConfig`` mapping for the given application log level."""
    loggers: Dict[str, Any] = {
        "bulk_import": {"level": level},
        # Route uvicorn through the same handler instead of its own formatter
        "uvicorn": {"level": level, "handlers": ["stdout"], "propagate": False},
        "uvicorn.access": {"level": level, "handlers": ["stdout"], "propagate": False},
    }
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "line": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "line",
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": loggers,
        "root": {"handlers": ["stdout"], "level": level},
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Install the logging configuration once per process; later calls are no-ops."""
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        log_level = "INFO"

    dictConfig(build_logging_config(log_level))
    _is_configured = True
