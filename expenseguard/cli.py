"""Command-line interface for the ExpenseGuard engine."""

from __future__ import annotations

import argparse
import sys
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import pydantic

from . import schemas
from .alerts import AlertState
from .config import Settings
from .database import Database
from .errors import ExpenseGuardError
from .logging import configure_cli_logging
from .money import format_currency, format_percent
from .months import current_month_key, validate_month_key
from .service import ExpenseService

DESCRIPTION = "ExpenseGuard budget tracking"
PREFIX = "[expenseguard]"


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Expected YYYY-MM-DD date format") from exc


def _parse_month(value: str) -> str:
    try:
        return validate_month_key(value)
    except ExpenseGuardError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _parse_amount(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"Invalid amount: {value!r}") from exc


def _add_month_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--month",
        type=_parse_month,
        default=None,
        help="Month key YYYY-MM (default: current month)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="expenseguard", description=DESCRIPTION)
    parser.add_argument(
        "--database-url",
        dest="database_url",
        help="SQLAlchemy database URL (default: $EXPENSEGUARD_DATABASE_URL)",
    )
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Mirror logs to artifacts/logs/expenseguard.log in JSON format",
    )
    parser.add_argument("--log-level", dest="log_level", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    init_db = sub.add_parser("init-db", help="Create tables and seed default categories")
    init_db.add_argument(
        "--seed",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Seed the default categories (default: $EXPENSEGUARD_SEED_CATEGORIES or on)",
    )

    sub.add_parser("categories", help="List categories")

    add_category = sub.add_parser("add-category", help="Create a category")
    add_category.add_argument("name")
    add_category.add_argument("--description")

    add_expense = sub.add_parser("add-expense", help="Record an expense and check its budget")
    add_expense.add_argument("--category", type=int, required=True, help="Category id")
    add_expense.add_argument("--amount", type=_parse_amount, required=True)
    add_expense.add_argument("--description", required=True)
    add_expense.add_argument(
        "--date",
        dest="spent_on",
        type=_parse_date,
        default=None,
        help="Expense date YYYY-MM-DD (default: today)",
    )
    add_expense.add_argument("--notes")

    set_budget = sub.add_parser("set-budget", help="Create or overwrite a monthly budget")
    set_budget.add_argument("--category", type=int, required=True, help="Category id")
    set_budget.add_argument("--limit", type=_parse_amount, required=True)
    _add_month_argument(set_budget)

    budgets = sub.add_parser("budgets", help="Show budgets with spend for a month")
    _add_month_argument(budgets)

    check = sub.add_parser("check", help="Check the budget alert for a category")
    check.add_argument("--category", type=int, required=True, help="Category id")
    _add_month_argument(check)

    summary = sub.add_parser("summary", help="Per-category spend for a month")
    _add_month_argument(summary)
    return parser


def _handle_init_db(service: ExpenseService, settings: Settings, args: argparse.Namespace) -> None:
    seed = settings.seed_categories if args.seed is None else args.seed
    added = service.seed_default_categories() if seed else 0
    print(f"{PREFIX} init-db url={settings.database_url} seeded={added}")


def _handle_categories(service: ExpenseService, _args: argparse.Namespace) -> None:
    for category in service.list_categories():
        print(f"{PREFIX} category id={category.id} name={category.name}")


def _handle_add_category(service: ExpenseService, args: argparse.Namespace) -> None:
    category = service.create_category(
        schemas.CategoryCreate(name=args.name, description=args.description)
    )
    print(f"{PREFIX} category created id={category.id} name={category.name}")


def _print_alert(state: AlertState, message: str | None) -> None:
    print(f"{PREFIX} alert state={state.value}")
    if message:
        print(message)


def _handle_add_expense(service: ExpenseService, args: argparse.Namespace) -> None:
    expense_in = schemas.ExpenseCreate(
        category_id=args.category,
        amount=args.amount,
        description=args.description,
        spent_on=args.spent_on or date.today(),
        notes=args.notes,
    )
    result = service.save_expense(expense_in)
    expense = result.expense
    print(
        f"{PREFIX} expense created id={expense.id} amount={format_currency(expense.amount)} "
        f"date={expense.spent_on.isoformat()}"
    )
    _print_alert(result.alert.state, result.alert.message)


def _handle_set_budget(service: ExpenseService, args: argparse.Namespace) -> None:
    budget = service.save_budget(
        schemas.BudgetCreate(
            category_id=args.category,
            month_key=args.month or current_month_key(),
            limit_amount=args.limit,
        )
    )
    print(
        f"{PREFIX} budget id={budget.id} category={budget.category_name} "
        f"month={budget.month_key} limit={format_currency(budget.limit_amount)}"
    )


def _handle_budgets(service: ExpenseService, args: argparse.Namespace) -> None:
    month_key = args.month or current_month_key()
    views = service.get_budgets_for_month(month_key)
    print(f"{PREFIX} budgets month={month_key} count={len(views)}")
    for view in views:
        print(
            f"{view.budget.category_name}: limit={format_currency(view.budget.limit_amount)} "
            f"spent={format_currency(view.spent_amount)} "
            f"remaining={format_currency(view.remaining)} "
            f"used={format_percent(view.usage_percent)} status={view.status.value}"
        )


def _handle_check(service: ExpenseService, args: argparse.Namespace) -> None:
    alert = service.check_budget(args.category, args.month or current_month_key())
    _print_alert(alert.state, alert.message)


def _handle_summary(service: ExpenseService, args: argparse.Namespace) -> None:
    summary = service.get_monthly_category_summary(args.month or current_month_key())
    print(
        f"{PREFIX} summary month={summary.month_key} "
        f"total={format_currency(summary.total_spent)}"
    )
    for row in summary.rows:
        print(f"{row.category_name}: {format_currency(row.total_spent)}")


_HANDLERS = {
    "categories": _handle_categories,
    "add-category": _handle_add_category,
    "add-expense": _handle_add_expense,
    "set-budget": _handle_set_budget,
    "budgets": _handle_budgets,
    "check": _handle_check,
    "summary": _handle_summary,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env().with_overrides(
        database_url=args.database_url,
        json_logs=args.json_logs,
        log_level=args.log_level,
    )
    configure_cli_logging(json_logs=settings.json_logs, level=settings.log_level)

    database = Database.from_settings(settings)
    try:
        database.init_db()
        service = ExpenseService.from_database(database)
        if args.cmd == "init-db":
            _handle_init_db(service, settings, args)
        else:
            _HANDLERS[args.cmd](service, args)
    except (ExpenseGuardError, pydantic.ValidationError) as exc:
        print(f"{PREFIX} error: {exc}", file=sys.stderr)
        return 1
    finally:
        database.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
