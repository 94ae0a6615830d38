"""Logging setup. Every handler we own redacts provider keys before writing."""

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from folio_tracker.lib.config import APP_DIR

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_FILE = APP_DIR / "folio-tracker.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

REDACTED = "[REDACTED]"

# Finnhub sends its key as token=, FMP and Alpha Vantage as apikey=,
# Anthropic in the x-api-key header.
KEY_PATTERNS = (
    (re.compile(r"(apikey|api_key|token|password|secret)=([^&\s]+)", re.I), rf"\1={REDACTED}"),
    (
        re.compile(r"""(["']?(?:apikey|x-api-key|token)["']?\s*:\s*)["']([^"']+)["']""", re.I),
        rf"\1'{REDACTED}'",
    ),
    (re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.I), f"Bearer {REDACTED}"),
    (re.compile(r"sk-ant-[A-Za-z0-9\-_]+"), REDACTED),
)
KEY_NAMES = frozenset({"apikey", "api_key", "token", "x-api-key", "password", "secret"})


def redact(value: Any) -> Any:
    """Copy of ``value`` with key-looking strings and key-named entries masked."""
    if isinstance(value, str):
        for pattern, replacement in KEY_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in KEY_NAMES else redact(v) for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(item) for item in value)
    return value


class APIKeyFilter(logging.Filter):
    """Rewrites the message and its arguments through :func:`redact`. Never drops a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, dict):
            record.args = redact(record.args)
        elif record.args:
            record.args = tuple(redact(arg) for arg in record.args)
        return True


def _has_key_filter(filterer: logging.Filterer) -> bool:
    return any(isinstance(f, APIKeyFilter) for f in filterer.filters)


def _own_handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(APIKeyFilter())
    return handler


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """
    Configure the root logger.

    If something (a test runner, an embedding app) already attached handlers,
    they are kept and only gain the key filter. Otherwise a stderr handler is
    added, plus a rotating file handler (10MB x 5).

    Args:
        level: Root log level
        log_file: Log file path; defaults to ``$LOG_FILE`` or
            ~/.folio-tracker/folio-tracker.log. An empty string disables the file.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if root.handlers:
        for handler in root.handlers:
            if not _has_key_filter(handler):
                handler.addFilter(APIKeyFilter())
        return

    root.addHandler(_own_handler(logging.StreamHandler(), level))

    if log_file is None:
        log_file = os.getenv("LOG_FILE", str(DEFAULT_LOG_FILE))
    if not log_file:
        return

    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    root.addHandler(_own_handler(file_handler, level))


def get_logger(name: str) -> logging.Logger:
    """``logging.getLogger(name)`` with the key filter attached once."""
    logger = logging.getLogger(name)
    if not _has_key_filter(logger):
        logger.addFilter(APIKeyFilter())
    return logger
