from fastapi.testclient import TestClient

from restopos.core.config import settings
from restopos.main import app


def _use_local_store(monkeypatch) -> None:
    monkeypatch.setattr(settings, "supabase_url", "")
    monkeypatch.setattr(settings, "owner_password", "gokul2024")


def _owner_headers(client: TestClient) -> dict[str, str]:
    login = client.post("/api/auth/owner", json={"password": "gokul2024"})
    assert login.status_code == 200
    return {"Authorization": f"Bearer {login.json()['access_token']}"}


def test_health_and_system_info_report_local_store(local_store, monkeypatch) -> None:
    _use_local_store(monkeypatch)

    with TestClient(app) as client:
        health = client.get("/api/health")
        info = client.get("/api/system-info")

    assert health.status_code == 200
    assert health.json()["status"] == "ok"
    assert health.json()["database"] == "local"
    assert health.json()["clients"] == 0
    assert info.json()["database"] == "local"
    assert info.json()["realtime"] is False
    assert info.json()["features"]["realtime"] is False
    assert info.json()["features"]["staff_permissions"] is True


def test_startup_seeds_menu_and_hides_owner_password(local_store, monkeypatch) -> None:
    _use_local_store(monkeypatch)

    with TestClient(app) as client:
        menu = client.get("/api/menu").json()
        values = client.get("/api/settings").json()

    assert len(menu) == 17
    assert menu[0]["category"] == "Appetizers"
    assert values == {"num_tables": "4", "restaurant_name": "Gokul Restaurant", "tax_rate": "0"}


def test_owner_endpoints_require_token(local_store, monkeypatch) -> None:
    _use_local_store(monkeypatch)

    with TestClient(app) as client:
        anonymous = client.post("/api/menu", json={"category": "Drinks", "name": "Lassi", "price": 40})
        wrong = client.post("/api/auth/owner", json={"password": "nope"})
        headers = _owner_headers(client)
        created = client.post(
            "/api/menu",
            json={"category": "Drinks", "name": "Lassi", "price": 40},
            headers=headers,
        )
        removed = client.delete(f"/api/menu/{created.json()['id']}", headers=headers)
        missing = client.delete(f"/api/menu/{created.json()['id']}", headers=headers)

    assert anonymous.status_code == 401
    assert wrong.status_code == 401
    assert created.status_code == 201
    assert created.json()["price"] == 40
    assert removed.json() == {"success": True}
    assert missing.status_code == 404
    assert "not found" in missing.json()["detail"]


def test_owner_password_update_is_hashed_and_redacted(local_store, monkeypatch) -> None:
    _use_local_store(monkeypatch)

    with TestClient(app) as client:
        headers = _owner_headers(client)
        changed = client.post("/api/settings", json={"key": "owner_password", "value": "new-secret"}, headers=headers)
        old_login = client.post("/api/auth/owner", json={"password": "gokul2024"})
        new_login = client.post("/api/auth/owner", json={"password": "new-secret"})
        tables = client.post("/api/settings", json={"key": "num_tables", "value": 6}, headers=headers)
        values = client.get("/api/settings").json()

    assert changed.json() == {"key": "owner_password", "value": ""}
    assert old_login.status_code == 401
    assert new_login.status_code == 200
    assert tables.json() == {"key": "num_tables", "value": "6"}
    assert "owner_password" not in values
    assert values["num_tables"] == "6"


def test_order_kitchen_bill_flow_over_http(local_store, monkeypatch) -> None:
    _use_local_store(monkeypatch)

    with TestClient(app) as client:
        created = client.post(
            "/api/orders",
            json={
                "table_id": 2,
                "staff_name": "Ravi",
                "items": [{"name": "Samosa", "qty": 2, "price": 8}, {"name": "Gokul Thali", "price": 100}],
            },
        )
        order = created.json()
        ticket = client.post(
            "/api/kitchen-orders",
            json={"order_id": order["id"], "batch_id": 1, "staff_name": "Ravi", "table_id": 2, "items": order["items"]},
        ).json()
        ready = client.patch(f"/api/kitchen-orders/{ticket['id']}", json={"status": "ready"})
        completed = client.patch(f"/api/orders/{order['id']}", json={"status": "completed"})
        bill = client.post(
            "/api/bills",
            json={
                "order_id": order["id"],
                "table_id": 2,
                "staff_name": "Ravi",
                "items": order["items"],
                "subtotal": 116,
                "tax": 0,
                "total": 116,
            },
        ).json()
        fetched = client.get(f"/api/bills/{bill['id']}")
        missing = client.get("/api/bills/999")
        searched = client.get("/api/bills", params={"search": "ravi"}).json()
        performance = client.get("/api/analytics/staff-performance").json()
        popular = client.get("/api/analytics/popular-items").json()
        staff = client.get("/api/staff").json()
        bad_days = client.get("/api/analytics/daily-sales", params={"days": 0})

    assert created.status_code == 201
    assert order["total"] == 116
    assert order["items"][0] == {"name": "Samosa", "quantity": 2, "price": 8}
    assert ready.json()["ready_at"] is not None
    assert completed.json()["status"] == "completed"
    assert completed.json()["completed_at"] is not None
    assert bill["bill_number"].startswith("BILL-")
    assert fetched.json()["bill_number"] == bill["bill_number"]
    assert missing.status_code == 404
    assert [item["id"] for item in searched] == [bill["id"]]
    assert performance == [{"staff_name": "Ravi", "order_count": 1, "total_revenue": 116, "avg_order_value": 116}]
    assert popular[0]["item_name"] == "Samosa"
    assert [member["name"] for member in staff] == ["Ravi"]
    assert bad_days.status_code == 422


def test_live_clients_receive_change_messages(local_store, monkeypatch) -> None:
    _use_local_store(monkeypatch)

    with TestClient(app) as client:
        with client.websocket_connect("/ws") as websocket:
            assert client.get("/api/health").json()["clients"] == 1
            client.post("/api/orders", json={"table_id": 1, "staff_name": "Ravi", "items": []})
            message = websocket.receive_json()

    assert message["event"] == "order_created"
    assert message["data"]["staff_name"] == "Ravi"
    assert isinstance(message["timestamp"], int)
