from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from expenseguard.alerts import AlertState
from expenseguard.logging import (
    LOG_PATH,
    JsonAuditFormatter,
    configure_cli_logging,
    setup_logger,
)


def _tagged(logger: logging.Logger, tag: str) -> list[logging.Handler]:
    return [handler for handler in logger.handlers if getattr(handler, tag, False)]


def test_setup_logger_is_idempotent(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    logger = setup_logger(json_format=True)
    setup_logger(json_format=True)

    assert len(_tagged(logger, "_expenseguard_console")) == 1
    assert len(_tagged(logger, "_expenseguard_json")) == 1
    assert logger.propagate is True


def test_explicit_level_wins_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXPENSEGUARD_LOG_LEVEL", "warning")
    assert setup_logger(level="DEBUG").level == logging.DEBUG
    assert setup_logger(level=logging.ERROR).level == logging.ERROR
    assert setup_logger().level == logging.WARNING

    monkeypatch.delenv("EXPENSEGUARD_LOG_LEVEL")
    assert setup_logger().level == logging.INFO


def test_json_log_lines_carry_alert_fields(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    logger = setup_logger(json_format=True)

    logging.getLogger("expenseguard.alerts").warning(
        "Budget exceeded for %s",
        "Food",
        extra={"category_id": 3, "month_key": "2024-06", "alert_state": AlertState.EXCEEDED},
    )
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / LOG_PATH).read_text(encoding="utf-8").splitlines()
    payload = json.loads(lines[-1])
    assert payload["level"] == "WARNING"
    assert payload["source"] == "expenseguard.alerts"
    assert payload["message"] == "Budget exceeded for Food"
    assert payload["category_id"] == 3
    assert payload["month_key"] == "2024-06"
    assert payload["alert_state"] == "EXCEEDED"


def test_formatter_includes_exceptions() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.getLogger("expenseguard.test").makeRecord(
            "expenseguard.test", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info()
        )

    payload = json.loads(JsonAuditFormatter().format(record))
    assert payload["alert_state"] is None
    assert "RuntimeError: boom" in payload["exception"]


def test_configure_cli_logging_toggles_json_handler(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    # Registers the variable with monkeypatch so it is restored afterwards.
    monkeypatch.setenv("EXPENSEGUARD_JSON_LOGS", "0")

    logger = configure_cli_logging(json_logs=True)
    assert len(_tagged(logger, "_expenseguard_json")) == 1
    assert (tmp_path / LOG_PATH).exists()

    configure_cli_logging(json_logs=False)
    assert len(_tagged(logger, "_expenseguard_console")) == 1


def test_configure_cli_logging_strips_child_handlers() -> None:
    child = setup_logger("expenseguard.stores")
    assert _tagged(child, "_expenseguard_console")

    configure_cli_logging(json_logs=False)

    assert not _tagged(child, "_expenseguard_console")
    child.setLevel(logging.NOTSET)
