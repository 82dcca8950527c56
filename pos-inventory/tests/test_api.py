"""
Tests for the FastAPI application (`api/main.py` and routers).

Runs the app against an in-memory store with a pinned clock; the lifespan
handler builds the services when the TestClient starts.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, make_product
from api.main import create_app
from config.settings import Settings
from repositories.memory_store import InMemoryInventoryStore


@pytest.fixture
def api_store() -> InMemoryInventoryStore:
    return InMemoryInventoryStore(
        [
            make_product(product_id="prod-001", stock=10, price="10.0"),
            make_product(product_id="prod-002", name="Milk 1L", stock=0, price="4.5"),
            make_product(
                product_id="prod-003",
                name="Yogurt",
                stock=20,
                price="2.0",
                expiration_date=NOW + timedelta(days=3),
            ),
        ]
    )


@pytest.fixture
def client(api_store):
    app = create_app(Settings(), store=api_store, clock=lambda: NOW)
    with TestClient(app) as test_client:
        yield test_client


def _sale(**overrides):
    body = {
        "product_id": "prod-001",
        "quantity": 2,
        "unit_price": "10.0",
        "operator_id": "user_123",
        "sold_at": "2025-06-01T12:00:00Z",
    }
    body.update(overrides)
    return body


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["store_backend"] == "memory"


def test_register_sale(client) -> None:
    response = client.post("/api/v1/sales", json=_sale())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert Decimal(body["sale"]["total_price"]) == Decimal("20")
    assert Decimal(body["sale"]["total_with_tax"]) == Decimal("24.6")

    product = client.get("/api/v1/products/prod-001/availability", params={"quantity": 8}).json()
    assert product["available"] is True
    assert product["available_quantity"] == 8

    listed = client.get("/api/v1/sales").json()
    assert listed["total_count"] == 1
    assert listed["items"][0]["sale_id"] == body["sale_id"]


def test_register_sale_without_time_uses_clock(client) -> None:
    body = _sale()
    del body["sold_at"]

    response = client.post("/api/v1/sales", json=body)

    assert response.status_code == 201
    assert response.json()["sale"]["sold_at"].startswith("2025-06-01T12:00:00")


@pytest.mark.parametrize(
    "overrides, status, error_kind",
    [
        ({"quantity": 15}, 409, "INSUFFICIENT_STOCK"),
        ({"quantity": 0, "product_id": ""}, 422, "INVALID_SALE_DATA"),
        ({"product_id": "prod-404"}, 404, "PRODUCT_NOT_FOUND"),
    ],
)
def test_rejected_sales(client, overrides, status, error_kind) -> None:
    response = client.post("/api/v1/sales", json=_sale(**overrides))

    assert response.status_code == status
    assert response.json()["success"] is False
    assert response.json()["error_kind"] == error_kind
    assert client.get("/api/v1/sales").json()["total_count"] == 0


def test_get_and_delete_sale(client) -> None:
    sale_id = client.post("/api/v1/sales", json=_sale()).json()["sale_id"]

    assert client.get(f"/api/v1/sales/{sale_id}").status_code == 200
    assert client.delete(f"/api/v1/sales/{sale_id}").status_code == 204
    assert client.get(f"/api/v1/sales/{sale_id}").status_code == 404
    assert client.delete(f"/api/v1/sales/{sale_id}").status_code == 404


def test_calculate_change(client) -> None:
    response = client.post("/api/v1/sales/change", json={"total": "50.00", "received": "70.00"})

    assert response.status_code == 200
    assert Decimal(response.json()["change"]) == Decimal("20.00")

    underpaid = client.post("/api/v1/sales/change", json={"total": "50.00", "received": "30.00"})
    assert Decimal(underpaid.json()["change"]) == Decimal("0")


def test_products(client) -> None:
    listed = client.get("/api/v1/products").json()
    in_stock = client.get("/api/v1/products", params={"in_stock_only": True}).json()

    assert listed["total_count"] == 3
    assert {p["product_id"] for p in in_stock["items"]} == {"prod-001", "prod-003"}


def test_add_product_and_update_stock(client) -> None:
    created = client.post("/api/v1/products", json={"name": "Tea", "price": "3.20", "stock": 12})

    assert created.status_code == 201
    product_id = created.json()["product_id"]
    assert product_id

    updated = client.put(f"/api/v1/products/{product_id}/stock", json={"stock": 4})
    assert updated.status_code == 200
    assert updated.json()["stock"] == 4

    assert client.put("/api/v1/products/prod-404/stock", json={"stock": 4}).status_code == 404
    assert client.put(f"/api/v1/products/{product_id}/stock", json={"stock": -1}).status_code == 422


def test_adding_a_product_with_a_taken_id_is_a_conflict(client) -> None:
    response = client.post(
        "/api/v1/products",
        json={"product_id": "prod-001", "name": "Coffee 1kg", "price": "18.00", "stock": 5},
    )

    assert response.status_code == 409
    assert client.get("/api/v1/products").json()["total_count"] == 3


def test_availability_outcomes(client) -> None:
    insufficient = client.get("/api/v1/products/prod-001/availability", params={"quantity": 11}).json()
    missing = client.get("/api/v1/products/prod-404/availability", params={"quantity": 1}).json()

    assert insufficient["outcome"] == "INSUFFICIENT_STOCK"
    assert missing["outcome"] == "NOT_FOUND"


def test_alert_lifecycle(client) -> None:
    created = client.post("/api/v1/alerts/recompute").json()

    assert {(a["product_id"], a["alert_type"]) for a in created["items"]} == {
        ("prod-002", "OUT_OF_STOCK"),
        ("prod-003", "EXPIRING_SOON"),
    }

    alert_id = created["items"][0]["alert_id"]
    assert client.post(f"/api/v1/alerts/{alert_id}/read").status_code == 204
    assert client.post(f"/api/v1/alerts/{alert_id}/read").status_code == 204

    listed = client.get("/api/v1/alerts").json()
    assert listed["total_count"] == 2
    assert listed["unread_count"] == 1
    assert client.get("/api/v1/alerts", params={"unread_only": True}).json()["total_count"] == 1

    assert client.delete(f"/api/v1/alerts/{alert_id}").status_code == 204
    assert client.delete(f"/api/v1/alerts/{alert_id}").status_code == 404
    assert client.post("/api/v1/alerts/alert-404/read").status_code == 404


def test_dashboard(client) -> None:
    client.post("/api/v1/sales", json=_sale())
    client.post("/api/v1/alerts/recompute")

    body = client.get("/api/v1/dashboard").json()

    assert body["product_count"] == 3
    assert [p["product_id"] for p in body["out_of_stock_products"]] == ["prod-002"]
    assert [p["product_id"] for p in body["expiring_products"]] == ["prod-003"]
    assert body["unread_alert_count"] == 2
    assert body["sales_today"] == 1
    assert Decimal(body["revenue_today"]) == Decimal("20")
