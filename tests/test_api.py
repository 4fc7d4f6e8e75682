import pytest
from fastapi.testclient import TestClient

from pizzeria.deps import get_system
from pizzeria.main import app

from .conftest import FixedRandom


@pytest.fixture
def client(system):
    def override_get_system():
        try:
            yield system
            system.session.commit()
        except Exception:
            system.session.rollback()
            raise

    app.dependency_overrides[get_system] = override_get_system
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def create_pizza(client, **overrides):
    body = {"name": "Margherita", "ingredients": ["Mozzarella"], "size": "MEDIUM", "base_price": 150.0, "cooking_time": 15}
    body.update(overrides)
    r = client.post("/v1/pizzas", json=body)
    assert r.status_code == 201, r.text
    return r.json()


def create_customer(client, phone="+380501112233"):
    r = client.post(
        "/v1/customers",
        json={"name": "Olena", "phone": phone, "email": "olena@example.com", "address": "12 Khreshchatyk St"},
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok", "service": "pizzeria-service"}


def test_metrics_endpoint(client):
    client.get("/health")
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "http_requests_total" in r.text


def test_pizza_crud(client):
    pizza = create_pizza(client, size="LARGE")
    assert pizza["price"] == pytest.approx(195.0)

    assert client.get(f"/v1/pizzas/{pizza['id']}").json()["name"] == "Margherita"
    r = client.post(f"/v1/pizzas/{pizza['id']}/ingredients", json={"ingredient": "Basil"})
    assert r.json()["ingredients"] == ["Mozzarella", "Basil"]
    r = client.delete(f"/v1/pizzas/{pizza['id']}/ingredients/Mozzarella")
    assert r.json()["ingredients"] == ["Basil"]

    assert client.delete(f"/v1/pizzas/{pizza['id']}").status_code == 204
    assert client.get(f"/v1/pizzas/{pizza['id']}").status_code == 404
    assert client.get("/v1/pizzas").json() == []


def test_validation_error_maps_to_400(client):
    r = client.post(
        "/v1/pizzas",
        json={"name": "Bad", "base_price": 0, "cooking_time": 10},
        headers={"X-Correlation-Id": "abc"},
    )
    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert detail["correlationId"] == "abc"


def test_unknown_ids_map_to_404(client):
    r = client.get("/v1/orders/99", headers={"X-Correlation-Id": "cid-1"})
    assert r.status_code == 404
    assert r.json()["detail"] == {"code": "ORDER_NOT_FOUND", "correlationId": "cid-1"}
    assert client.get("/v1/customers/99").status_code == 404
    assert client.post("/v1/payments/99/refund").status_code == 404
    assert client.post("/v1/deliveries/99/courier", json={"courier": "Petro"}).status_code == 404


def test_customer_endpoints(client):
    customer = create_customer(client)

    assert client.get(f"/v1/customers/by-phone/{customer['phone']}").json()["id"] == customer["id"]
    r = client.patch(f"/v1/customers/{customer['id']}", json={"address": "3 New St", "name": ""})
    assert r.json()["address"] == "3 New St"
    assert r.json()["name"] == "Olena"
    assert len(client.get("/v1/customers").json()) == 1


def test_inline_customer_is_registered_on_first_order(client):
    inline = {"name": "Taras", "phone": "777", "email": "t@example.com", "address": "5 Lviv Rd"}

    first = client.post("/v1/orders", json={"customer": inline}).json()
    second = client.post("/v1/orders", json={"customer": inline}).json()

    assert first["customer_id"] == second["customer_id"]
    assert len(client.get("/v1/customers").json()) == 1
    assert client.post("/v1/orders", json={}).status_code == 400


def test_order_flow(client):
    pizza = create_pizza(client)
    customer = create_customer(client)

    order = client.post("/v1/orders", json={"customer_id": customer["id"]}).json()
    assert order["status"] == "PENDING"

    client.post(f"/v1/orders/{order['id']}/items", json={"pizza_id": pizza["id"], "quantity": 1})
    r = client.post(f"/v1/orders/{order['id']}/items", json={"pizza_id": pizza["id"], "quantity": 2})
    assert r.status_code == 201
    assert len(r.json()["items"]) == 1
    assert r.json()["total"] == pytest.approx(450.0)

    r = client.post(f"/v1/orders/{order['id']}/process", json={"payment_method": "ONLINE"})
    assert r.status_code == 200
    assert r.json()["processed"] is True
    assert r.json()["order"]["status"] == "COOKING"

    [payment] = client.get("/v1/payments", params={"order_id": order["id"]}).json()
    assert payment["status"] == "COMPLETED"
    assert payment["amount"] == pytest.approx(450.0)

    [delivery] = client.get("/v1/deliveries", params={"active": True}).json()
    assert delivery["estimated_minutes"] == 35

    r = client.post(f"/v1/deliveries/{delivery['id']}/courier", json={"courier": "Petro"})
    assert r.json()["courier"] == "Petro"
    r = client.patch(f"/v1/deliveries/{delivery['id']}/status", json={"status": "DELIVERED"})
    assert r.json()["status"] == "DELIVERED"

    assert client.get(f"/v1/orders/{order['id']}").json()["status"] == "DELIVERED"
    assert client.get("/v1/deliveries", params={"active": True}).json() == []
    assert [o["id"] for o in client.get(f"/v1/customers/{customer['id']}/orders").json()] == [order["id"]]


def test_process_empty_order_is_not_processed(client):
    customer = create_customer(client)
    order = client.post("/v1/orders", json={"customer_id": customer["id"]}).json()

    r = client.post(f"/v1/orders/{order['id']}/process", json={"payment_method": "CASH"})

    assert r.json()["processed"] is False
    assert client.get("/v1/payments").json() == []


def test_failed_payment_and_refund(client, system):
    pizza = create_pizza(client)
    customer = create_customer(client)
    order = client.post("/v1/orders", json={"customer_id": customer["id"]}).json()
    client.post(f"/v1/orders/{order['id']}/items", json={"pizza_id": pizza["id"], "quantity": 1})

    system.payments.rng = FixedRandom(10)
    r = client.post(f"/v1/orders/{order['id']}/process", json={"payment_method": "CARD"})
    assert r.json()["processed"] is False
    assert r.json()["order"]["status"] == "PENDING"

    system.payments.rng = FixedRandom(1)
    client.post(f"/v1/orders/{order['id']}/process", json={"payment_method": "CARD"})
    failed, completed = client.get("/v1/payments").json()

    assert client.post(f"/v1/payments/{failed['id']}/refund").json()["refunded"] is False
    r = client.post(f"/v1/payments/{completed['id']}/refund").json()
    assert r["refunded"] is True
    assert r["payment"]["status"] == "FAILED"


def test_remove_order_item(client):
    pizza = create_pizza(client)
    customer = create_customer(client)
    order = client.post("/v1/orders", json={"customer_id": customer["id"]}).json()
    item = client.post(f"/v1/orders/{order['id']}/items", json={"pizza_id": pizza["id"]}).json()["items"][0]

    r = client.delete(f"/v1/orders/{order['id']}/items/{item['id']}")

    assert r.json()["items"] == []
    assert client.delete(f"/v1/orders/{order['id']}/items/{item['id']}").status_code == 404


def test_manual_status_override(client):
    customer = create_customer(client)
    order = client.post("/v1/orders", json={"customer_id": customer["id"]}).json()

    r = client.patch(f"/v1/orders/{order['id']}/status", json={"status": "READY"})

    assert r.json()["status"] == "READY"


def test_reports(client):
    pizza = create_pizza(client)
    customer = create_customer(client)
    order = client.post("/v1/orders", json={"customer_id": customer["id"]}).json()
    client.post(f"/v1/orders/{order['id']}/items", json={"pizza_id": pizza["id"], "quantity": 2})
    client.post(f"/v1/orders/{order['id']}/process", json={"payment_method": "CASH"})

    sales = client.get("/v1/reports/sales", params={"start": "2026-01-01", "end": "2026-01-01"}).json()
    assert sales["total_orders"] == 1
    assert sales["total_revenue"] == pytest.approx(300.0)
    assert sales["by_method"] == [{"method": "CASH", "count": 1, "total": 300.0}]

    popular = client.get("/v1/reports/popular-pizzas", params={"limit": 5}).json()
    assert popular == [{"name": "Margherita", "quantity": 2, "revenue": 300.0}]
    assert client.get("/v1/reports/popular-pizzas", params={"limit": -1}).status_code == 422
    assert client.get("/v1/reports/popular-pizzas", params={"limit": 0}).status_code == 422

    stats = client.get("/v1/reports/stats").json()
    assert stats["orders"] == 1
    assert stats["active_deliveries"] == 1
