"""Logging setup for the Companion runtime.

Everything goes through the standard :mod:`logging` tree: a rotating file
under ``~/.companion/logs`` (or ``COMPANION_LOG_DIR``) and, optionally, the
console. Callback URIs carry credentials, so every installed handler scrubs
``token``/``apiKey``/``code``/``state`` query values before a record is written.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import re
from pathlib import Path

__all__ = ["setup_logging", "get_logger", "get_log_path", "CredentialScrubber"]

LOG_FILE_NAME = "companion.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_DEFAULT_LOG_DIR = Path.home() / ".companion" / "logs"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_SENSITIVE_QUERY = re.compile(r"(?P<key>\b(?:token|apiKey|code|state)=)(?P<value>[^&\s'\"]+)")

_active_log_path: Path | None = None


class CredentialScrubber(logging.Filter):
    """Masks credential-bearing query parameters in formatted log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        scrubbed = _SENSITIVE_QUERY.sub(r"\g<key>***", message)
        if scrubbed != message:
            record.msg = scrubbed
            record.args = None
        return True


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route the root logger to ``companion.log`` (and stderr when ``console``).

    Repeated calls keep the first configuration unless ``force`` is set.
    """

    global _active_log_path
    if _active_log_path is not None and not force:
        return _active_log_path

    log_path = _resolve_log_dir(log_dir) / LOG_FILE_NAME
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    _prepare_handlers(handlers, level)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _active_log_path = log_path
    return log_path


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` ran."""

    return _active_log_path


def _prepare_handlers(handlers: list[logging.Handler], level: int) -> None:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    scrubber = CredentialScrubber()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(scrubber)


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    candidate = log_dir or os.environ.get("COMPANION_LOG_DIR") or _DEFAULT_LOG_DIR
    return Path(candidate).expanduser()
