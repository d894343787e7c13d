"""Logging configuration for rescan.

Provides centralized logging setup with:
- File handler with rotation (10MB, 5 backups)
- Rich console handler with colored output
- Per-target loggers whose level follows the target's verbosity
"""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, MutableMapping

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


TRACE = 5
logging.addLevelName(TRACE, "TRACE")

VERBOSITY_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_logging_initialized = False


def _get_data_dir() -> Path:
    """Return the data directory (same as config.DATA_DIR without circular import)."""
    env = os.environ.get("DATA_DIR")
    if env:
        return Path(env)
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


def setup_logging(log_level: str = "INFO") -> None:
    """Initialize logging with file and console handlers.

    Args:
        log_level: Logging level (TRACE, DEBUG, INFO, WARNING, ERROR)
    """
    global _logging_initialized

    if _logging_initialized:
        return

    numeric_level = verbosity_level(log_level)

    # Create rescan.log in DATA_DIR (writable in Docker)
    data_dir = _get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    log_file = data_dir / "rescan.log"

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(TRACE)
    file_formatter = logging.Formatter(
        "%(asctime)s - %(levelname)-8s - %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(file_formatter)

    custom_theme = Theme({
        "logging.level.info": "bold magenta",
        "logging.level.trace": "dim",
    })
    console = Console(theme=custom_theme)

    console_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    console_handler.setLevel(numeric_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(TRACE)  # Capture everything, handlers filter
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Silence noisy third-party loggers
    logging.getLogger("watchdog").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _logging_initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the specified module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance for the module
    """
    return logging.getLogger(name)


def verbosity_level(label: str) -> int:
    """Map a verbosity label such as ``debug`` or ``warn`` to a logging level.

    Blank or unknown labels fall back to INFO.
    """
    if not label:
        return logging.INFO
    return VERBOSITY_LEVELS.get(label.strip().lower(), logging.INFO)


class TargetLoggerAdapter(logging.LoggerAdapter):
    """Prefix every message with the target's context fields.

    Per-call fields (``path``, ``library``) are taken from ``extra`` and
    appended after the static context.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        fields = dict(self.extra or {})
        fields.update(kwargs.pop("extra", None) or {})
        context = " ".join(f'{key}="{value}"' for key, value in fields.items())
        kwargs["extra"] = fields
        return f"{msg} {context}" if context else msg, kwargs

    def trace(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(TRACE, msg, *args, **kwargs)


def get_target_logger(target: str, url: str, verbosity: str) -> TargetLoggerAdapter:
    """Return a context logger for one configured target.

    The underlying logger is ``rescan.targets.<target>`` and its level is set
    from the target's verbosity label.
    """
    logger = logging.getLogger(f"rescan.targets.{target}")
    logger.setLevel(verbosity_level(verbosity))
    return TargetLoggerAdapter(logger, {"target": target, "url": url})
