"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging.config
import os
from pathlib import Path
from typing import Any

import structlog

from .config.loader import HOME_ENV_VAR

LOGGER_NAME = "fuuka_harvester"
HARVESTER_LOG = "harvester.log"
ERROR_LOG = "error.log"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

_LOGGING_INITIALISED = False


def default_log_dir() -> Path:
    env_root = os.environ.get(HOME_ENV_VAR)
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def _rotating_file(path: Path, level: str) -> dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "filename": str(path),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUPS,
        "formatter": "json",
        "encoding": "utf-8",
    }


def build_logging_config(log_dir: Path, verbose: bool = False) -> dict[str, Any]:
    """dictConfig payload for the application logger.

    Page-level events go to the rotating log files only. The console shares
    the terminal with the progress row, so it is attached (to stderr, at
    DEBUG) just for ``--verbose`` runs.
    """

    handlers: dict[str, Any] = {
        "harvester_file": _rotating_file(log_dir / HARVESTER_LOG, "DEBUG" if verbose else "INFO"),
        "error_file": _rotating_file(log_dir / ERROR_LOG, "ERROR"),
    }
    if verbose:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "json",
            "stream": "ext://sys.stderr",
        }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
            }
        },
        "handlers": handlers,
        "loggers": {
            LOGGER_NAME: {
                "handlers": sorted(handlers),
                "level": "DEBUG" if verbose else "INFO",
                "propagate": False,
            },
        },
    }


def configure_logging(verbose: bool = False) -> structlog.BoundLogger:
    """Configure structlog + stdlib handlers once and return the application logger."""

    global _LOGGING_INITIALISED
    if not _LOGGING_INITIALISED:
        log_dir = default_log_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(build_logging_config(log_dir, verbose))
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.stdlib.add_log_level,
                structlog.processors.format_exc_info,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger(LOGGER_NAME)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


__all__ = ["build_logging_config", "configure_logging", "default_log_dir", "tail_log"]
