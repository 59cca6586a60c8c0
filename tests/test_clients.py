from datetime import timedelta

import pytest
from fastapi import HTTPException

from app.modules.clients.service import ClientService
from app.shared.utils.dates import utcnow


@pytest.fixture
def clients(make_order):
    now = utcnow()
    ana = {"name": "Ana", "lastName": "Pérez", "email": "ana@mail.com"}
    beto = {"name": "Beto", "lastName": "Gómez", "email": "beto@mail.com"}
    caro = {"name": "Caro", "lastName": "Díaz", "email": "caro@mail.com"}
    make_order(buyer=ana, total=250000, created_at=now - timedelta(days=200))
    make_order(buyer=ana, total=250000, created_at=now - timedelta(days=5))
    make_order(buyer=beto, total=10000, created_at=now - timedelta(days=3))
    make_order(buyer=caro, total=20000, created_at=now - timedelta(days=150))
    make_order(buyer=caro, total=50000, created_at=now - timedelta(days=140), status="cancelled")


def test_analytics_segments_clients(client, admin_headers, clients):
    response = client.get("/api/v1/clients/analytics", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total_clients"] == 3
    by_email = {c["email"]: c for c in body["clients"]}
    assert by_email["ana@mail.com"]["behavior_category"] == "recovered"
    assert by_email["beto@mail.com"]["behavior_category"] == "new"
    assert by_email["caro@mail.com"]["behavior_category"] == "lost"
    # Las canceladas no cuentan
    assert by_email["caro@mail.com"]["total_orders"] == 1
    assert body["clients"][0]["email"] == "ana@mail.com"

    behavior = {s["category"]: s["count"] for s in body["behavior_categories"]}
    assert behavior["new"] == 1
    assert behavior["lost"] == 1


def test_analytics_filters(client, admin_headers, clients):
    response = client.get("/api/v1/clients/analytics", headers=admin_headers, params={"behavior_category": "new"})
    assert [c["email"] for c in response.json()["clients"]] == ["beto@mail.com"]

    response = client.get("/api/v1/clients/analytics", headers=admin_headers, params={"search": "díaz"})
    assert [c["email"] for c in response.json()["clients"]] == ["caro@mail.com"]


def test_hidden_clients_are_excluded(client, admin_headers, clients):
    response = client.post("/api/v1/clients/hide", headers=admin_headers, json={"emails": ["Beto@Mail.com"]})
    assert response.json()["updated_count"] == 1

    body = client.get("/api/v1/clients/analytics", headers=admin_headers).json()
    assert body["total_clients"] == 2

    body = client.get("/api/v1/clients/analytics", headers=admin_headers, params={"include_hidden": True}).json()
    hidden = [c for c in body["clients"] if c["is_hidden"]]
    assert [c["email"] for c in hidden] == ["beto@mail.com"]

    client.post("/api/v1/clients/show", headers=admin_headers, json={"emails": ["beto@mail.com"]})
    assert client.get("/api/v1/clients/analytics", headers=admin_headers).json()["total_clients"] == 3


def test_whatsapp_status(client, admin_headers, clients):
    client.post("/api/v1/clients/whatsapp/mark", headers=admin_headers, json={"emails": ["ana@mail.com"]})
    response = client.get("/api/v1/clients/status", headers=admin_headers, params={"emails": ["ana@mail.com", "beto@mail.com"]})
    statuses = {s["email"]: s for s in response.json()["statuses"]}
    assert statuses["ana@mail.com"]["whatsapp_contacted_at"] is not None
    assert statuses["beto@mail.com"]["whatsapp_contacted_at"] is None

    client.post("/api/v1/clients/whatsapp/unmark", headers=admin_headers, json={"emails": ["ana@mail.com"]})
    response = client.get("/api/v1/clients/status", headers=admin_headers, params={"emails": ["ana@mail.com"]})
    assert response.json()["statuses"][0]["whatsapp_contacted_at"] is None


def test_clients_by_category(client, admin_headers, clients):
    response = client.get("/api/v1/clients/by-category", headers=admin_headers, params={
        "category": "premium", "type": "spending"
    })
    assert response.status_code == 200
    assert response.json()["clients"] == [{"email": "ana@mail.com", "name": "Ana Pérez"}]

    invalid = client.get("/api/v1/clients/by-category", headers=admin_headers, params={
        "category": "vip", "type": "behavior"
    })
    assert invalid.status_code == 400


def test_get_clients_by_category_rejects_unknown_type(db):
    with pytest.raises(HTTPException) as exc:
        ClientService(db).get_clients_by_category("new", "edad")
    assert exc.value.status_code == 400
