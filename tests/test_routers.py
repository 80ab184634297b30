from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import (
    get_alert_service,
    get_connection_factory,
    get_cost_service,
    get_current_tenant_id,
    get_current_user_id,
    get_ingredients_service,
    get_inventory_service,
    get_orchestrator,
)
from app.main import app
from tests.conftest import TENANT_ID

@pytest.fixture
def client(kitchen):
    app.dependency_overrides[get_current_tenant_id] = lambda: TENANT_ID
    app.dependency_overrides[get_current_user_id] = lambda: None
    app.dependency_overrides[get_connection_factory] = lambda: kitchen.connection_factory
    app.dependency_overrides[get_alert_service] = lambda: kitchen.alert_service
    app.dependency_overrides[get_cost_service] = lambda: kitchen.cost_service
    app.dependency_overrides[get_orchestrator] = lambda: kitchen.orchestrator
    app.dependency_overrides[get_inventory_service] = lambda: kitchen.inventory
    app.dependency_overrides[get_ingredients_service] = lambda: kitchen.ingredients_service
    # No context manager: the lifespan would open a real database pool
    yield TestClient(app)
    app.dependency_overrides.clear()

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"

def test_requests_without_session_are_rejected(kitchen):
    app.dependency_overrides.clear()
    resp = TestClient(app).get("/ingredients")
    assert resp.status_code == 401
    assert resp.json()["error"] == "authentication_required"

def test_list_ingredients(client, kitchen):
    kitchen.add_ingredient(name="Flour")
    kitchen.add_ingredient(name="Butter")

    resp = client.get("/ingredients", params={"search": "flo"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    assert body["data"][0]["name"] == "Flour"

def test_adjust_stock(client, kitchen):
    flour = kitchen.add_ingredient(stock=10)

    resp = client.post(f"/ingredients/{flour.id}/adjust-stock", json={"delta": -12, "reason": "count"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["new_stock"] == 0
    assert data["truncated"] is True

def test_adjust_unknown_ingredient_returns_404(client):
    resp = client.post(f"/ingredients/{uuid4()}/adjust-stock", json={"delta": 1})

    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "not_found"

def test_bulk_adjust_stock(client, kitchen):
    flour = kitchen.add_ingredient(stock=10)

    resp = client.post("/ingredients/bulk-adjust-stock", json={
        "reason": "inventory",
        "adjustments": [
            {"ingredient_id": str(flour.id), "delta": 5},
            {"ingredient_id": str(uuid4()), "delta": 1},
        ],
    })

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is False
    assert len(body["results"]) == 1
    assert len(body["errors"]) == 1
    assert kitchen.stock_of(flour) == 15

def test_waste_requires_positive_quantity(client, kitchen):
    flour = kitchen.add_ingredient(stock=10)

    resp = client.post(f"/ingredients/{flour.id}/waste", json={"quantity": 0})

    assert resp.status_code == 422

def test_low_stock(client, kitchen):
    kitchen.add_ingredient(name="Flour", stock=1, min_stock=5)

    resp = client.get("/ingredients/low-stock")

    assert resp.status_code == 200
    assert resp.json()["data"][0]["deficit"] == 4

def test_update_price_cascades(client, kitchen):
    flour = kitchen.add_ingredient(price=10.0)
    kitchen.add_recipe(components=[(flour.id, 500, "g")], sale_price=20.0)

    resp = client.patch(f"/ingredients/{flour.id}/price", json={"price_per_unit": 11.0})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["old_price"] == 10.0
    assert data["alert"]["type"] == "price_increase"
    assert data["recalculation"]["updated_count"] == 1

def test_sale_and_purchase(client, kitchen):
    flour = kitchen.add_ingredient(stock=2)
    bread = kitchen.add_recipe(components=[(flour.id, 500, "g")])

    sale = client.post("/inventory/sales", json={
        "sale_id": str(uuid4()),
        "items": [{"recipe_id": str(bread.id), "quantity": 2}],
    })
    purchase = client.post("/inventory/purchases", json={
        "purchase_id": str(uuid4()),
        "items": [{"ingredient_id": str(flour.id), "quantity": 500, "unit": "g"}],
    })

    assert sale.status_code == 200
    assert purchase.status_code == 200
    assert kitchen.stock_of(flour) == pytest.approx(1.5)

def test_calculate_cost(client, kitchen):
    flour = kitchen.add_ingredient(price=10.0)
    bread = kitchen.add_recipe(components=[(flour.id, 500, "g")], sale_price=20.0)

    resp = client.post(f"/recipes/{bread.id}/calculate-cost")

    assert resp.status_code == 200
    breakdown = resp.json()["data"]["breakdown"]
    assert breakdown["total_cost"] == 5.0
    assert breakdown["margin_percentage"] == 75.0
    assert breakdown["is_complete"] is True

def test_calculate_cost_of_unknown_recipe(client):
    resp = client.post(f"/recipes/{uuid4()}/calculate-cost")
    assert resp.status_code == 404

def test_alert_lifecycle(client, kitchen):
    flour = kitchen.add_ingredient(stock=10, min_stock=5)
    client.post(f"/ingredients/{flour.id}/adjust-stock", json={"delta": -8})

    alerts = client.get("/alerts").json()["data"]
    assert [a["type"] for a in alerts] == ["low_stock"]
    alert_id = alerts[0]["id"]

    acknowledged = client.post(f"/alerts/{alert_id}/acknowledge")
    assert acknowledged.json()["data"]["status"] == "acknowledged"

    again = client.post(f"/alerts/{alert_id}/acknowledge")
    assert again.status_code == 409

    resolved = client.post(f"/alerts/{alert_id}/resolve")
    assert resolved.json()["data"]["status"] == "resolved"

    history = client.get("/alerts/history", params={"status": "resolved"}).json()["data"]
    assert [a["id"] for a in history] == [alert_id]

    stats = client.get("/alerts/stats").json()["data"]
    assert stats["active_count"] == 0
