import asyncio
from datetime import date

import pytest
from fastapi import HTTPException

from app.modules.repartos.service import RepartoService, validate_week_key, week_is_completed
from app.shared.database.models import RepartoWeek

BASE = "/api/v1/repartos"
WEEK = "2024-05-06"


def test_validate_week_key():
    assert validate_week_key(WEEK) == WEEK
    for invalid in ("2024-05-07", "06/05/2024", "semana"):
        with pytest.raises(HTTPException) as exc:
            validate_week_key(invalid)
        assert exc.value.status_code == 400


def test_week_is_completed():
    assert not week_is_completed({})
    assert week_is_completed({"1": [{"is_completed": True}]})
    assert not week_is_completed({"1": [{"is_completed": True}, {"is_completed": False}]})


def test_initialize_week_is_idempotent(client, db, admin_headers):
    response = client.post(f"{BASE}/{WEEK}/init", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()["data"]
    assert sorted(data) == ["1", "2", "3", "4", "5", "6"]
    assert all(len(rows) == 3 for rows in data.values())

    client.patch(f"{BASE}/{WEEK}/1/0", headers=admin_headers, json={"text": "Palermo"})
    again = client.post(f"{BASE}/{WEEK}/init", headers=admin_headers).json()
    assert again["data"]["1"][0]["text"] == "Palermo"
    assert db.query(RepartoWeek).count() == 1


def test_invalid_week_key(client, admin_headers):
    assert client.post(f"{BASE}/2024-05-07/init", headers=admin_headers).status_code == 400
    assert client.get(f"{BASE}/2024-05-13", headers=admin_headers).status_code == 404


def test_update_entry_keeps_identity(client, admin_headers):
    created = client.post(f"{BASE}/{WEEK}/init", headers=admin_headers).json()["data"]["2"][1]

    response = client.patch(f"{BASE}/{WEEK}/2/1", headers=admin_headers, json={"text": "Belgrano 10hs"})
    assert response.status_code == 200
    entry = response.json()["data"]["2"][1]
    assert entry["text"] == "Belgrano 10hs"
    assert entry["id"] == created["id"]
    assert entry["created_at"] == created["created_at"]

    assert client.patch(f"{BASE}/{WEEK}/2/9", headers=admin_headers, json={"text": "x"}).status_code == 404
    assert client.patch(f"{BASE}/{WEEK}/7/0", headers=admin_headers, json={"text": "x"}).status_code == 400


def test_toggle_entry(client, admin_headers):
    client.post(f"{BASE}/{WEEK}/init", headers=admin_headers)
    first = client.post(f"{BASE}/{WEEK}/3/0/toggle", headers=admin_headers).json()
    assert first["data"]["3"][0]["is_completed"] is True
    second = client.post(f"{BASE}/{WEEK}/3/0/toggle", headers=admin_headers).json()
    assert second["data"]["3"][0]["is_completed"] is False


def test_add_and_remove_rows(client, admin_headers):
    client.post(f"{BASE}/{WEEK}/init", headers=admin_headers)
    added = client.post(f"{BASE}/{WEEK}/4/rows", headers=admin_headers).json()
    assert len(added["data"]["4"]) == 4

    for _ in range(3):
        response = client.delete(f"{BASE}/{WEEK}/4/0", headers=admin_headers)
        assert response.status_code == 200
    assert len(response.json()["data"]["4"]) == 1

    last = client.delete(f"{BASE}/{WEEK}/4/0", headers=admin_headers)
    assert last.status_code == 400


def test_save_week_replaces_duplicates(client, db, admin_headers):
    db.add_all([
        RepartoWeek(week_key=WEEK, data={"1": []}),
        RepartoWeek(week_key=WEEK, data={"2": []}),
    ])
    db.commit()

    response = client.put(f"{BASE}/{WEEK}", headers=admin_headers, json={"data": {
        "1": [{"id": "a", "text": "Caballito", "is_completed": True}]
    }})
    assert response.status_code == 200
    assert db.query(RepartoWeek).filter(RepartoWeek.week_key == WEEK).count() == 1
    assert client.get(f"{BASE}/{WEEK}", headers=admin_headers).json()["data"]["1"][0]["text"] == "Caballito"


def test_list_filters_and_stats(client, admin_headers):
    client.put(f"{BASE}/{WEEK}", headers=admin_headers, json={"data": {
        "1": [{"id": "a", "is_completed": True}, {"id": "b", "is_completed": True}]
    }})
    client.put(f"{BASE}/2024-06-10", headers=admin_headers, json={"data": {
        "1": [{"id": "c", "is_completed": True}, {"id": "d", "is_completed": False}]
    }})

    may = client.get(f"{BASE}/", headers=admin_headers, params={"month": 5, "year": 2024}).json()
    assert list(may["weeks"]) == [WEEK]

    pending = client.get(f"{BASE}/", headers=admin_headers, params={"status": "pending"}).json()
    assert list(pending["weeks"]) == ["2024-06-10"]

    everything = client.get(f"{BASE}/", headers=admin_headers).json()
    assert list(everything["weeks"]) == ["2024-06-10", WEEK]

    stats = client.get(f"{BASE}/stats", headers=admin_headers).json()["stats"]
    assert stats["total_weeks"] == 2
    assert stats["total_entries"] == 4
    assert stats["completion_rate"] == 75.0


def test_weeks_of_month_endpoint(client, admin_headers):
    body = client.get(f"{BASE}/weeks-of-month", headers=admin_headers, params={"month": 5, "year": 2024}).json()
    assert body["weeks"][0] == {"week_key": "2024-04-29", "start_date": "2024-04-29", "end_date": "2024-05-05"}


def test_delete_week(client, admin_headers):
    client.post(f"{BASE}/{WEEK}/init", headers=admin_headers)
    assert client.delete(f"{BASE}/{WEEK}", headers=admin_headers).status_code == 200
    assert client.delete(f"{BASE}/{WEEK}", headers=admin_headers).status_code == 404


def test_cleanup_old_weeks(db):
    db.add_all([
        RepartoWeek(week_key="2023-10-30", data={}),
        RepartoWeek(week_key="2024-01-08", data={}),
        RepartoWeek(week_key="2024-05-06", data={}),
    ])
    db.commit()

    result = asyncio.run(RepartoService(db).cleanup_old_weeks(today=date(2024, 5, 10)))
    assert result.deleted_count == 1
    remaining = sorted(w.week_key for w in db.query(RepartoWeek).all())
    assert remaining == ["2024-01-08", "2024-05-06"]


def test_repartos_require_edit_permission(client, make_user, headers_for):
    user = make_user(permissions=["repartos:view"])
    headers = headers_for(user)
    assert client.get(f"{BASE}/", headers=headers).status_code == 200
    assert client.post(f"{BASE}/{WEEK}/init", headers=headers).status_code == 403


def test_cleanup_endpoint_is_admin_only(client, admin_headers, make_user, headers_for):
    user = make_user(permissions=["repartos:view", "repartos:edit"])
    assert client.post(f"{BASE}/cleanup", headers=headers_for(user)).status_code == 403
    response = client.post(f"{BASE}/cleanup", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["deleted_count"] == 0


@pytest.mark.parametrize("payload", [{"text": None}, {"is_completed": None}])
def test_update_entry_rejects_null(client, admin_headers, payload):
    client.post(f"{BASE}/{WEEK}/init", headers=admin_headers)
    assert client.patch(f"{BASE}/{WEEK}/1/0", headers=admin_headers, json=payload).status_code == 422

    # la semana sigue legible
    assert client.get(f"{BASE}/{WEEK}", headers=admin_headers).status_code == 200
    assert client.get(f"{BASE}/", headers=admin_headers).status_code == 200
