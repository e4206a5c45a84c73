"""FastAPI application exposing the ExpenseGuard engine."""
from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import List, Optional, TypeVar

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware

from . import __version__, schemas
from .alerts import BudgetAlert
from .config import Settings
from .database import Database
from .errors import ConflictError, NotFoundError, StoreError, ValidationError
from .logging import setup_logger
from .service import ExpenseSaveResult, ExpenseService

T = TypeVar("T")


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the application.

    When ``database`` is given the caller owns its lifecycle; otherwise one is
    opened from ``settings`` at startup and disposed at shutdown.
    """

    resolved = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logger(json_format=resolved.json_logs, level=resolved.log_level)
        owned = database is None
        db = Database.from_settings(resolved) if owned else database
        db.init_db()
        service = ExpenseService.from_database(db)
        if owned and resolved.seed_categories:
            service.seed_default_categories()
        app.state.service = service
        try:
            yield
        finally:
            if owned:
                db.dispose()

    app = FastAPI(title="ExpenseGuard", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    return app


def get_service(request: Request) -> ExpenseService:
    return request.app.state.service


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except StoreError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def _call(fn: Callable[..., T], *args: object) -> T:
    with _translate_errors():
        return fn(*args)


def _register_routes(app: FastAPI) -> None:
    @app.get("/expenses", response_model=List[schemas.ExpenseRead])
    def list_expenses(
        month: Optional[str] = None, service: ExpenseService = Depends(get_service)
    ) -> List[schemas.ExpenseRead]:
        return _call(service.list_expenses, month)

    @app.post("/expenses", response_model=ExpenseSaveResult, status_code=status.HTTP_201_CREATED)
    def create_expense(
        expense_in: schemas.ExpenseCreate, service: ExpenseService = Depends(get_service)
    ) -> ExpenseSaveResult:
        return _call(service.save_expense, expense_in)

    @app.get("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
    def get_expense(expense_id: int, service: ExpenseService = Depends(get_service)) -> schemas.ExpenseRead:
        return _call(service.get_expense, expense_id)

    @app.put("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
    def update_expense(
        expense_id: int,
        update_in: schemas.ExpenseUpdate,
        service: ExpenseService = Depends(get_service),
    ) -> schemas.ExpenseRead:
        return _call(service.update_expense, expense_id, update_in)

    @app.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_expense(expense_id: int, service: ExpenseService = Depends(get_service)) -> None:
        _call(service.delete_expense, expense_id)

    @app.get("/categories", response_model=List[schemas.CategoryRead])
    def list_categories(service: ExpenseService = Depends(get_service)) -> List[schemas.CategoryRead]:
        return _call(service.list_categories)

    @app.post("/categories", response_model=schemas.CategoryRead, status_code=status.HTTP_201_CREATED)
    def create_category(
        category_in: schemas.CategoryCreate, service: ExpenseService = Depends(get_service)
    ) -> schemas.CategoryRead:
        return _call(service.create_category, category_in)

    @app.get("/categories/{category_id}", response_model=schemas.CategoryRead)
    def get_category(category_id: int, service: ExpenseService = Depends(get_service)) -> schemas.CategoryRead:
        return _call(service.get_category, category_id)

    @app.put("/categories/{category_id}", response_model=schemas.CategoryRead)
    def update_category(
        category_id: int,
        update_in: schemas.CategoryUpdate,
        service: ExpenseService = Depends(get_service),
    ) -> schemas.CategoryRead:
        return _call(service.update_category, category_id, update_in)

    @app.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_category(category_id: int, service: ExpenseService = Depends(get_service)) -> None:
        _call(service.delete_category, category_id)

    @app.get("/budgets/{month_key}", response_model=List[schemas.BudgetView])
    def get_budgets(month_key: str, service: ExpenseService = Depends(get_service)) -> List[schemas.BudgetView]:
        return _call(service.get_budgets_for_month, month_key)

    @app.post("/budgets", response_model=schemas.BudgetRead)
    def save_budget(
        budget_in: schemas.BudgetCreate, service: ExpenseService = Depends(get_service)
    ) -> schemas.BudgetRead:
        return _call(service.save_budget, budget_in)

    @app.delete("/budgets/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_budget(budget_id: int, service: ExpenseService = Depends(get_service)) -> None:
        _call(service.delete_budget, budget_id)

    @app.get("/alerts/{category_id}/{month_key}", response_model=BudgetAlert)
    def check_budget(
        category_id: int, month_key: str, service: ExpenseService = Depends(get_service)
    ) -> BudgetAlert:
        return _call(service.check_budget, category_id, month_key)

    @app.get("/summary/{month_key}", response_model=schemas.MonthlySummary)
    def get_summary(month_key: str, service: ExpenseService = Depends(get_service)) -> schemas.MonthlySummary:
        return _call(service.get_monthly_category_summary, month_key)

    @app.get("/health", tags=["system"])
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}


app = create_app()
