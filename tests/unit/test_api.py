from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient


def _create_category(client: TestClient, name: str = "Food") -> int:
    response = client.post("/categories", json={"name": name, "description": "Meals"})
    assert response.status_code == 201
    return response.json()["id"]


def _create_expense(client: TestClient, category_id: int, amount: str, spent_on: str = "2024-06-10") -> dict:
    response = client.post(
        "/expenses",
        json={
            "category_id": category_id,
            "description": "Groceries",
            "amount": amount,
            "spent_on": spent_on,
        },
    )
    assert response.status_code == 201
    return response.json()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_expense_amount_round_trips_exactly(client: TestClient) -> None:
    category_id = _create_category(client)
    payload = _create_expense(client, category_id, "45.10")

    expense = payload["expense"]
    assert Decimal(expense["amount"]) == Decimal("45.10")
    assert expense["category_name"] == "Food"
    assert payload["alert"] == {"state": "NONE", "view": None, "message": None}

    fetched = client.get(f"/expenses/{expense['id']}").json()
    assert Decimal(fetched["amount"]) == Decimal("45.10")


def test_expense_creation_reports_alert(client: TestClient) -> None:
    category_id = _create_category(client)
    response = client.post(
        "/budgets",
        json={"category_id": category_id, "month_key": "2024-06", "limit_amount": "100.00"},
    )
    assert response.status_code == 200

    near = _create_expense(client, category_id, "85.00")["alert"]
    assert near["state"] == "NEAR_LIMIT"
    assert "85.0%" in near["message"]

    exceeded = _create_expense(client, category_id, "20.00")["alert"]
    assert exceeded["state"] == "EXCEEDED"
    assert "Over by: $5.00" in exceeded["message"]
    assert exceeded["view"]["status"] == "EXCEEDED"

    check = client.get(f"/alerts/{category_id}/2024-06").json()
    assert check["state"] == "EXCEEDED"


def test_budgets_view(client: TestClient) -> None:
    category_id = _create_category(client)
    client.post(
        "/budgets",
        json={"category_id": category_id, "month_key": "2024-06", "limit_amount": "200"},
    )
    _create_expense(client, category_id, "50.00")

    response = client.get("/budgets/2024-06")
    assert response.status_code == 200
    (view,) = response.json()
    assert view["budget"]["category_name"] == "Food"
    assert Decimal(view["spent_amount"]) == Decimal("50.00")
    assert Decimal(view["remaining"]) == Decimal("150.00")
    assert float(view["usage_percent"]) == 25.0
    assert view["status"] == "OK"


def test_budget_upsert_keeps_id(client: TestClient) -> None:
    category_id = _create_category(client)
    first = client.post(
        "/budgets",
        json={"category_id": category_id, "month_key": "2024-05", "limit_amount": "500"},
    ).json()
    second = client.post(
        "/budgets",
        json={"category_id": category_id, "month_key": "2024-05", "limit_amount": "300"},
    ).json()

    assert first["id"] == second["id"]
    assert Decimal(second["limit_amount"]) == Decimal("300")
    assert len(client.get("/budgets/2024-05").json()) == 1

    assert client.delete(f"/budgets/{first['id']}").status_code == 204
    assert client.get("/budgets/2024-05").json() == []


def test_summary_endpoint(client: TestClient) -> None:
    food_id = _create_category(client)
    _create_category(client, "Transport")
    _create_expense(client, food_id, "12.34")

    summary = client.get("/summary/2024-06").json()

    assert summary["month_key"] == "2024-06"
    assert [row["category_name"] for row in summary["rows"]] == ["Food", "Transport"]
    assert Decimal(summary["total_spent"]) == Decimal("12.34")


def test_invalid_month_keys_are_rejected(client: TestClient) -> None:
    category_id = _create_category(client)

    assert client.get("/budgets/2024-13").status_code == 422
    assert client.get("/summary/2024-6").status_code == 422
    assert client.get(f"/alerts/{category_id}/june").status_code == 422
    assert client.get("/expenses", params={"month": "2024/06"}).status_code == 422
    response = client.post(
        "/budgets",
        json={"category_id": category_id, "month_key": "2024-00", "limit_amount": "10"},
    )
    assert response.status_code == 422


def test_invalid_amounts_are_rejected(client: TestClient) -> None:
    category_id = _create_category(client)
    for amount in ("0", "-5.00", "1.234"):
        response = client.post(
            "/expenses",
            json={
                "category_id": category_id,
                "description": "Bad",
                "amount": amount,
                "spent_on": "2024-06-01",
            },
        )
        assert response.status_code == 422


def test_unknown_ids_return_404(client: TestClient) -> None:
    assert client.get("/expenses/999").status_code == 404
    assert client.delete("/expenses/999").status_code == 404
    assert client.get("/categories/999").status_code == 404
    assert client.delete("/budgets/999").status_code == 404
    response = client.post(
        "/expenses",
        json={"category_id": 999, "description": "x", "amount": "1.00", "spent_on": "2024-06-01"},
    )
    assert response.status_code == 404


def test_duplicate_category_conflicts(client: TestClient) -> None:
    _create_category(client)
    response = client.post("/categories", json={"name": "Food"})
    assert response.status_code == 409


def test_category_update_and_delete(client: TestClient) -> None:
    category_id = _create_category(client)
    expense = _create_expense(client, category_id, "9.99")["expense"]

    response = client.put(f"/categories/{category_id}", json={"name": "Dining"})
    assert response.status_code == 200
    assert response.json()["name"] == "Dining"

    assert client.delete(f"/categories/{category_id}").status_code == 204
    assert client.get("/categories").json() == []
    detached = client.get(f"/expenses/{expense['id']}").json()
    assert detached["category_id"] is None


def test_expense_update_and_listing(client: TestClient) -> None:
    category_id = _create_category(client)
    expense = _create_expense(client, category_id, "5.00")["expense"]
    _create_expense(client, category_id, "7.00", spent_on="2024-07-02")

    response = client.put(f"/expenses/{expense['id']}", json={"amount": "6.25", "notes": "tip"})
    assert response.status_code == 200
    assert Decimal(response.json()["amount"]) == Decimal("6.25")

    june = client.get("/expenses", params={"month": "2024-06"}).json()
    assert [item["id"] for item in june] == [expense["id"]]
    assert len(client.get("/expenses").json()) == 2


@pytest.mark.parametrize("field", ["description", "amount", "spent_on", "category_id"])
def test_expense_update_rejects_null_for_required_fields(client: TestClient, field: str) -> None:
    category_id = _create_category(client)
    expense = _create_expense(client, category_id, "5.00")["expense"]

    response = client.put(f"/expenses/{expense['id']}", json={field: None})

    assert response.status_code == 422
    stored = client.get(f"/expenses/{expense['id']}").json()
    assert stored["category_id"] == category_id
    assert Decimal(stored["amount"]) == Decimal("5.00")
    assert stored["spent_on"] == "2024-06-10"


def test_expense_update_still_clears_notes(client: TestClient) -> None:
    category_id = _create_category(client)
    expense = _create_expense(client, category_id, "5.00")["expense"]
    client.put(f"/expenses/{expense['id']}", json={"notes": "tip"})

    response = client.put(f"/expenses/{expense['id']}", json={"notes": None})

    assert response.status_code == 200
    assert response.json()["notes"] is None


@pytest.mark.parametrize("name", ["   ", None])
def test_category_update_rejects_blank_or_null_name(client: TestClient, name: str | None) -> None:
    category_id = _create_category(client)

    response = client.put(f"/categories/{category_id}", json={"name": name})

    assert response.status_code == 422
    assert client.get(f"/categories/{category_id}").json()["name"] == "Food"


def test_category_update_strips_name(client: TestClient) -> None:
    category_id = _create_category(client)

    response = client.put(f"/categories/{category_id}", json={"name": "  Dining  "})

    assert response.status_code == 200
    assert response.json()["name"] == "Dining"
