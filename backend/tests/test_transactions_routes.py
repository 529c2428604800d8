"""
API tests for the transaction endpoints.
"""
import uuid

import pytest

from auth_helpers import register_user, transaction_payload


@pytest.fixture()
def auth(client):
    headers, _ = register_user(client)
    return headers


def _create(client, headers, **overrides) -> dict:
    response = client.post("/api/transactions", headers=headers, json=transaction_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["transaction"]


def test_create_transaction(client, auth) -> None:
    response = client.post(
        "/api/transactions",
        headers=auth,
        json=transaction_payload(description="  Weekly shop  ", notes="farmers market"),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Transaction created successfully"
    transaction = body["transaction"]
    assert transaction["type"] == "expense"
    assert transaction["amount"] == 42.5
    assert transaction["description"] == "Weekly shop"
    assert transaction["category"] == "Food"
    assert transaction["paymentMethod"] == "Debit Card"
    assert transaction["date"] == "2024-03-05T12:00:00"
    assert transaction["notes"] == "farmers market"
    assert transaction["id"]
    assert transaction["userId"]


def test_create_normalizes_timezone_to_utc(client, auth) -> None:
    transaction = _create(client, auth, date="2024-03-05T12:00:00+02:00")
    assert transaction["date"] == "2024-03-05T10:00:00"


@pytest.mark.parametrize(
    "overrides",
    [
        {"type": "transfer"},
        {"category": "Gadgets"},
        {"paymentMethod": "Cheque"},
        {"amount": 0},
        {"amount": -5},
        {"amount": "12345678901234567890.123"},
        {"amount": 10000000000000},
        {"amount": 10.123},
        {"description": "   "},
        {"description": "x" * 256},
        {"date": "not-a-date"},
        {"type": "income", "category": "Food"},
        {"type": "expense", "category": "Salary"},
    ],
)
def test_create_rejects_invalid_input(client, auth, overrides) -> None:
    response = client.post("/api/transactions", headers=auth, json=transaction_payload(**overrides))
    assert response.status_code == 422


def test_other_category_is_valid_for_both_types(client, auth) -> None:
    _create(client, auth, type="income", category="Other")
    _create(client, auth, type="expense", category="Other")


def test_list_transactions_paginates_newest_first(client, auth) -> None:
    for day in range(1, 6):
        _create(client, auth, date=f"2024-03-0{day}T09:00:00", amount=day)

    response = client.get("/api/transactions", headers=auth, params={"page": 2, "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 5
    assert body["totalPages"] == 3
    assert body["currentPage"] == 2
    assert [t["amount"] for t in body["transactions"]] == [3.0, 2.0]


def test_list_transactions_filters(client, auth) -> None:
    _create(client, auth, type="income", category="Salary", amount=1000, date="2024-03-01T09:00:00")
    _create(client, auth, category="Food", amount=20, date="2024-03-10T18:30:00")
    _create(client, auth, category="Transport", amount=15, date="2024-03-10T08:00:00")
    _create(client, auth, category="Food", amount=30, date="2024-04-02T12:00:00")

    by_type = client.get("/api/transactions", headers=auth, params={"type": "expense"}).json()
    assert by_type["total"] == 3

    by_category = client.get("/api/transactions", headers=auth, params={"category": "Food"}).json()
    assert sorted(t["amount"] for t in by_category["transactions"]) == [20.0, 30.0]

    # A date-only end bound covers the whole day
    by_range = client.get(
        "/api/transactions",
        headers=auth,
        params={"startDate": "2024-03-02", "endDate": "2024-03-10"},
    ).json()
    assert by_range["total"] == 2
    assert {t["category"] for t in by_range["transactions"]} == {"Food", "Transport"}


def test_list_transactions_rejects_bad_parameters(client, auth) -> None:
    assert client.get("/api/transactions", headers=auth, params={"startDate": "yesterday"}).status_code == 400
    assert client.get("/api/transactions", headers=auth, params={"type": "transfer"}).status_code == 422
    assert client.get("/api/transactions", headers=auth, params={"page": 0}).status_code == 422


def test_list_empty(client, auth) -> None:
    body = client.get("/api/transactions", headers=auth).json()
    assert body == {"transactions": [], "totalPages": 0, "currentPage": 1, "total": 0}


def test_get_transaction(client, auth) -> None:
    created = _create(client, auth)

    response = client.get(f"/api/transactions/{created['id']}", headers=auth)
    assert response.status_code == 200
    assert response.json()["transaction"] == created

    missing = client.get(f"/api/transactions/{uuid.uuid4()}", headers=auth)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Transaction not found"


def test_update_transaction(client, auth) -> None:
    created = _create(client, auth)

    response = client.put(
        f"/api/transactions/{created['id']}",
        headers=auth,
        json={"amount": 55.25, "category": "Shopping", "notes": "new shoes"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Transaction updated successfully"
    updated = response.json()["transaction"]
    assert updated["amount"] == 55.25
    assert updated["category"] == "Shopping"
    assert updated["notes"] == "new shoes"
    assert updated["description"] == created["description"]
    assert updated["type"] == "expense"


def test_update_checks_category_against_stored_type(client, auth) -> None:
    created = _create(client, auth)

    mismatch = client.put(f"/api/transactions/{created['id']}", headers=auth, json={"category": "Salary"})
    assert mismatch.status_code == 400

    switched = client.put(
        f"/api/transactions/{created['id']}",
        headers=auth,
        json={"type": "income", "category": "Salary"},
    )
    assert switched.status_code == 200
    assert switched.json()["transaction"]["type"] == "income"


def test_update_rejects_invalid_fields(client, auth) -> None:
    created = _create(client, auth)
    url = f"/api/transactions/{created['id']}"

    assert client.put(url, headers=auth, json={"amount": -1}).status_code == 422
    assert client.put(url, headers=auth, json={"amount": 1.005}).status_code == 422
    assert client.put(url, headers=auth, json={"amount": "12345678901234567890"}).status_code == 422
    assert client.put(url, headers=auth, json={"description": None}).status_code == 422
    assert client.put(f"/api/transactions/{uuid.uuid4()}", headers=auth, json={"amount": 1}).status_code == 404


def test_delete_transaction(client, auth) -> None:
    created = _create(client, auth)

    response = client.delete(f"/api/transactions/{created['id']}", headers=auth)
    assert response.status_code == 200
    assert response.json()["message"] == "Transaction deleted successfully"

    assert client.get(f"/api/transactions/{created['id']}", headers=auth).status_code == 404
    assert client.delete(f"/api/transactions/{created['id']}", headers=auth).status_code == 404


def test_other_users_transactions_are_invisible(client, auth) -> None:
    created = _create(client, auth)
    other, _ = register_user(client, email="bob@example.com")

    assert client.get(f"/api/transactions/{created['id']}", headers=other).status_code == 404
    assert client.put(
        f"/api/transactions/{created['id']}", headers=other, json={"amount": 1}
    ).status_code == 404
    assert client.delete(f"/api/transactions/{created['id']}", headers=other).status_code == 404
    assert client.get("/api/transactions", headers=other).json()["total"] == 0

    # Still there for the owner
    assert client.get(f"/api/transactions/{created['id']}", headers=auth).status_code == 200


def test_monthly_summary(client, auth) -> None:
    _create(client, auth, type="income", category="Salary", amount=1000, date="2024-03-01T00:00:00")
    _create(client, auth, category="Food", amount=200, date="2024-03-05T12:00:00")
    _create(client, auth, category="Food", amount=50, date="2024-03-31T23:59:59")
    _create(client, auth, category="Food", amount=999, date="2024-04-01T00:00:00")
    _create(client, auth, category="Food", amount=999, date="2024-02-29T23:59:59")

    response = client.get("/api/transactions/summary/2024/3", headers=auth)

    assert response.status_code == 200
    assert response.json() == {
        "totalIncome": 1000.0,
        "totalExpenses": 250.0,
        "netBalance": 750.0,
        "transactionCount": 3,
        "categoryBreakdown": {
            "Food": {"income": 0.0, "expenses": 250.0, "total": 250.0},
            "Salary": {"income": 1000.0, "expenses": 0.0, "total": 1000.0},
        },
    }


def test_monthly_summary_empty_month(client, auth) -> None:
    body = client.get("/api/transactions/summary/2023/7", headers=auth).json()
    assert body == {
        "totalIncome": 0.0,
        "totalExpenses": 0.0,
        "netBalance": 0.0,
        "transactionCount": 0,
        "categoryBreakdown": {},
    }


def test_monthly_summary_rejects_invalid_month(client, auth) -> None:
    assert client.get("/api/transactions/summary/2024/13", headers=auth).status_code == 422
    assert client.get("/api/transactions/summary/2024/0", headers=auth).status_code == 422


def test_export_then_import(client, auth) -> None:
    _create(client, auth, type="income", category="Salary", amount=1000, date="2024-03-01T09:00:00")
    _create(client, auth, category="Food", amount=12.5, date="2024-03-02T09:00:00", notes="pizza")

    exported = client.get("/api/transactions/export", headers=auth).json()
    assert len(exported["transactions"]) == 2
    assert exported["transactions"][0]["date"] == "2024-03-02T09:00:00"
    assert exported["user"]["email"] == "alice@example.com"
    assert exported["exportDate"]

    other, _ = register_user(client, email="bob@example.com")
    items = exported["transactions"] + [
        {"type": "expense", "amount": 5, "description": "bad", "category": "Salary",
         "paymentMethod": "Cash", "date": "2024-03-03T09:00:00"},
        {"type": "expense"},
    ]
    response = client.post("/api/transactions/import", headers=other, json={"transactions": items})

    assert response.status_code == 200
    assert response.json() == {
        "message": "Import completed! 2 transactions imported, 2 errors.",
        "imported": 2,
        "errors": 2,
    }

    imported = client.get("/api/transactions", headers=other).json()["transactions"]
    assert len(imported) == 2
    assert {t["id"] for t in imported}.isdisjoint({t["id"] for t in exported["transactions"]})
    assert {(t["category"], t["amount"], t["notes"]) for t in imported} == {
        ("Salary", 1000.0, None),
        ("Food", 12.5, "pizza"),
    }


def test_largest_storable_amount_is_accepted(client, auth) -> None:
    transaction = _create(client, auth, amount="9999999999999.99")
    assert transaction["amount"] == 9999999999999.99


def test_import_counts_malformed_items_without_rejecting_batch(client, auth) -> None:
    valid = transaction_payload(description="Imported")
    items = [
        valid,
        "garbage",
        42,
        None,
        ["not", "an", "object"],
        transaction_payload(amount="12345678901234567890.123"),
        transaction_payload(amount=3.333),
    ]

    response = client.post("/api/transactions/import", headers=auth, json={"transactions": items})

    assert response.status_code == 200
    assert response.json()["imported"] == 1
    assert response.json()["errors"] == 6

    listing = client.get("/api/transactions", headers=auth).json()
    assert [t["description"] for t in listing["transactions"]] == ["Imported"]


def test_import_requires_a_list(client, auth) -> None:
    response = client.post("/api/transactions/import", headers=auth, json={"transactions": "nope"})
    assert response.status_code == 422
