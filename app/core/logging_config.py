"""Centralized logging configuration.

LOG_FORMAT=json (default unless DEBUG=true) emits one JSON object per record so
the console's output can be shipped to a log collector as-is. LOG_FORMAT=text
keeps the classic single-line format for local runs.

The SensitiveDataFilter is always attached: AWS secret keys, passwords and
session cookies must never reach stdout.
"""

import logging
import os
import sys

from pythonjsonlogger.jsonlogger import JsonFormatter

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _resolve_format(debug: bool) -> str:
    return os.getenv("LOG_FORMAT", "text" if debug else "json").lower()


def _build_handler(debug: bool = False) -> logging.Handler:
    """Return a StreamHandler with the appropriate formatter."""
    handler = logging.StreamHandler(sys.stdout)

    if _resolve_format(debug) == "json":
        formatter: logging.Formatter = JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
            rename_fields={"levelname": "level", "asctime": "timestamp"},
        )
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)
    return handler


def configure_logging(log_level: str = "INFO", debug: bool = False) -> None:
    """Configure the root logger with structured output and secrets redaction.

    Call once at application startup.
    """
    from app.core.logging_filters import SensitiveDataFilter

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    root.handlers.clear()

    handler = _build_handler(debug)
    handler.addFilter(SensitiveDataFilter())
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
