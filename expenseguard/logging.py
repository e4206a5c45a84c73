"""Structured logging helpers for ExpenseGuard."""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

from .config import JSON_LOGS_ENV, LOG_LEVEL_ENV, env_flag

CONSOLE_FORMAT: Final[str] = "[%(levelname)s] %(name)s: %(message)s"
DEFAULT_LEVEL: Final[str] = "INFO"
LOG_DIR: Final[Path] = Path("artifacts") / "logs"
LOG_PATH: Final[Path] = LOG_DIR / "expenseguard.log"
ROOT_LOGGER: Final[str] = "expenseguard"


class JsonAuditFormatter(logging.Formatter):
    """Format log records as single-line JSON payloads."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC).isoformat()
        payload = {
            "timestamp": timestamp,
            "level": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
            "category_id": getattr(record, "category_id", None),
            "month_key": getattr(record, "month_key", None),
            "alert_state": _coerce_text(getattr(record, "alert_state", None)),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _coerce_text(value: object) -> str | None:
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _resolve_level(level: str | int | None) -> int:
    """Pick the log level from the argument, then the environment, then the default."""

    if isinstance(level, int):
        return level
    env_level = os.environ.get(LOG_LEVEL_ENV)
    if isinstance(level, str) and level.strip():
        candidate = level.strip().upper()
    elif env_level:
        candidate = env_level.strip().upper()
    else:
        candidate = DEFAULT_LEVEL
    resolved = logging.getLevelName(candidate)
    return int(resolved) if isinstance(resolved, int) else logging.INFO


def _json_logging_enabled(explicit: bool) -> bool:
    if explicit:
        return True
    return env_flag(os.environ.get(JSON_LOGS_ENV), False)


def _ensure_console_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_expenseguard_console", False):
            handler.setLevel(level)
            return
    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    stream_handler._expenseguard_console = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)


def _ensure_json_handler(logger: logging.Logger, level: int) -> None:
    for handler in logger.handlers:
        if getattr(handler, "_expenseguard_json", False):
            handler.setLevel(level)
            return
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    json_handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
    json_handler.setLevel(level)
    json_handler.setFormatter(JsonAuditFormatter())
    json_handler._expenseguard_json = True  # type: ignore[attr-defined]
    logger.addHandler(json_handler)


def setup_logger(
    name: str = ROOT_LOGGER,
    json_format: bool = False,
    level: str | int | None = None,
) -> logging.Logger:
    """Configure and return a logger with the ExpenseGuard handlers attached.

    Calling it repeatedly for the same name never duplicates handlers.
    """

    resolved_level = _resolve_level(level)
    logger = logging.getLogger(name)
    logger.setLevel(resolved_level)
    # Keep propagation on so capture handlers (pytest ``caplog``) still see records.
    logger.propagate = True
    _ensure_console_handler(logger, resolved_level)
    if _json_logging_enabled(json_format):
        _ensure_json_handler(logger, resolved_level)
    return logger


def configure_cli_logging(json_logs: bool, level: str | int | None = None) -> logging.Logger:
    """Reconfigure the package root logger for CLI or server use.

    Child loggers created with ``logging.getLogger(__name__)`` inherit the
    handlers through propagation, so only stray handlers on them are reset.
    """

    if json_logs:
        os.environ[JSON_LOGS_ENV] = "1"
    else:
        os.environ.pop(JSON_LOGS_ENV, None)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if not isinstance(logger, logging.Logger):
            continue
        if name.startswith(f"{ROOT_LOGGER}.") and logger.handlers:
            for handler in list(logger.handlers):
                if getattr(handler, "_expenseguard_console", False) or getattr(
                    handler, "_expenseguard_json", False
                ):
                    logger.removeHandler(handler)
    return setup_logger(ROOT_LOGGER, json_format=json_logs, level=level)


__all__ = ["JsonAuditFormatter", "configure_cli_logging", "setup_logger"]
