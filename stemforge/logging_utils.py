"""Package logging: a prefixed stderr handler plus an opt-in render log file.

Render modules log through ``stemforge.<module>`` loggers. Setting
``STEMFORGE_DEBUG`` shows per-stem note counts on the console, and
``STEMFORGE_LOG_DIR`` additionally mirrors everything into ``stemforge.log``.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

_LOGGER = logging.getLogger("stemforge.logging")
_PACKAGE_LOGGER = "stemforge"
_LOG_DIR_ENV = "STEMFORGE_LOG_DIR"
_DEBUG_ENV = "STEMFORGE_DEBUG"
_LOG_FILE = "stemforge.log"

_CONSOLE_FORMAT = "%(level_prefix)s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_LEVEL_PREFIXES = {
    logging.DEBUG: "[debug]",
    logging.INFO: "[info]",
    logging.WARNING: "[warn]",
    logging.ERROR: "[error]",
    logging.CRITICAL: "[fatal]",
}

_logging_configured = False


class _ConsolePrefixFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.level_prefix = _LEVEL_PREFIXES.get(record.levelno, "")
        return super().format(record)


def get_log_dir() -> Path | None:
    """Directory for the render log; None unless ``STEMFORGE_LOG_DIR`` is set."""
    configured = os.environ.get(_LOG_DIR_ENV)
    return Path(configured).expanduser() if configured else None


def get_log_path() -> Path | None:
    log_dir = get_log_dir()
    return log_dir / _LOG_FILE if log_dir is not None else None


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.__stderr__)
    handler.setLevel(logging.DEBUG if os.environ.get(_DEBUG_ENV) else logging.INFO)
    handler.setFormatter(_ConsolePrefixFormatter(_CONSOLE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATE_FORMAT))
    return handler


def configure_logging(*, force: bool = False) -> None:
    """Attach the package handlers once; ``force`` replaces them."""
    global _logging_configured
    if _logging_configured and not force:
        return

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG)
    if force:
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)

    # An application that configured the root logger already owns the console.
    if force or not logging.getLogger().handlers:
        package_logger.addHandler(_console_handler())

    log_path = get_log_path()
    if log_path is not None:
        try:
            package_logger.addHandler(_file_handler(log_path))
        except OSError as exc:
            _LOGGER.warning("Failed to configure file logging: %s", exc, exc_info=True)

    package_logger.propagate = True
    _logging_configured = True
