"""Shared pytest fixtures: an in-memory database, the engine facade and an API client."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable, Iterator
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest


def _insert_repo_root() -> None:
    """Make the repository root importable without an editable install."""

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_insert_repo_root()

from fastapi.testclient import TestClient  # noqa: E402

from expenseguard import schemas  # noqa: E402
from expenseguard.database import Database  # noqa: E402
from expenseguard.server import create_app  # noqa: E402
from expenseguard.service import ExpenseService  # noqa: E402


def pytest_report_header(config: pytest.Config) -> Iterable[str]:  # pragma: no cover - pytest hook
    log_level = os.environ.get("EXPENSEGUARD_LOG_LEVEL", "INFO")
    return [f"expenseguard repo: {Path.cwd()}", f"EXPENSEGUARD_LOG_LEVEL={log_level}"]


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer settings out of the tests."""

    for name in (
        "EXPENSEGUARD_DATABASE_URL",
        "EXPENSEGUARD_JSON_LOGS",
        "EXPENSEGUARD_SEED_CATEGORIES",
        "EXPENSEGUARD_SQL_ECHO",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("EXPENSEGUARD_LOG_LEVEL", "DEBUG")


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    """Drop handlers attached by CLI runs or app lifespans between tests."""

    yield
    logger = logging.getLogger("expenseguard")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def database() -> Iterator[Database]:
    db = Database("sqlite://")
    db.init_db()
    try:
        yield db
    finally:
        db.drop_all()
        db.dispose()


@pytest.fixture()
def service(database: Database) -> ExpenseService:
    return ExpenseService.from_database(database)


@pytest.fixture()
def food(service: ExpenseService) -> schemas.CategoryRead:
    return service.create_category(schemas.CategoryCreate(name="Food", description="Meals"))


@pytest.fixture()
def transport(service: ExpenseService) -> schemas.CategoryRead:
    return service.create_category(schemas.CategoryCreate(name="Transport"))


@pytest.fixture()
def make_expense():
    def _make(category_id: int, amount: str, spent_on: date, description: str = "Expense") -> schemas.ExpenseCreate:
        return schemas.ExpenseCreate(
            category_id=category_id,
            description=description,
            amount=Decimal(amount),
            spent_on=spent_on,
        )

    return _make


@pytest.fixture()
def client(database: Database) -> Iterator[TestClient]:
    app = create_app(database=database)
    with TestClient(app) as test_client:
        yield test_client
