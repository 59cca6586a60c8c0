from datetime import date, datetime

from app.modules.express.service import ExpressService, compute_stock_final, cutoff_hour
from app.shared.database.models import PuntoEnvio, Stock
from app.shared.utils.dates import business_tz


def _stock(db, **fields):
    data = {
        "punto_envio": "Centro",
        "section": "PERRO",
        "producto": "POLLO",
        "peso": "5KG",
        "stock_inicial": 10,
        "llevamos": 2,
        "pedidos_del_dia": 0,
        "stock_final": 12,
        "fecha": "2024-05-10",
    }
    data.update(fields)
    stock = Stock(**data)
    db.add(stock)
    db.commit()
    return stock


def test_helpers():
    assert compute_stock_final(10, 2, 15) == 0
    assert compute_stock_final(10, 2, 3) == 9
    assert cutoff_hour(None) == 14
    assert cutoff_hour("18:30") == 18


def test_create_punto_envio_unique_name(client, admin_headers):
    response = client.post("/api/v1/express/puntos-envio", headers=admin_headers, json={
        "nombre": " Centro ", "cutoff_time": "14:00"
    })
    assert response.status_code == 201
    assert response.json()["punto_envio"]["nombre"] == "Centro"

    duplicate = client.post("/api/v1/express/puntos-envio", headers=admin_headers, json={"nombre": "centro"})
    assert duplicate.status_code == 409

    invalid = client.post("/api/v1/express/puntos-envio", headers=admin_headers, json={
        "nombre": "Norte", "cutoff_time": "25:00"
    })
    assert invalid.status_code == 422


def test_puntos_envio_filtered_by_user(client, db, make_user, headers_for):
    db.add_all([PuntoEnvio(nombre="Centro"), PuntoEnvio(nombre="Norte")])
    db.commit()
    user = make_user(permissions=["express:view"], puntos_envio=["Norte"])

    response = client.get("/api/v1/express/puntos-envio", headers=headers_for(user))
    assert response.status_code == 200
    assert [p["nombre"] for p in response.json()["puntos_envio"]] == ["Norte"]


def test_stock_final_is_computed(client, admin_headers):
    response = client.post("/api/v1/express/stock", headers=admin_headers, json={
        "punto_envio": "Centro", "producto": "POLLO", "peso": "5KG",
        "stock_inicial": 10, "llevamos": 5, "pedidos_del_dia": 4, "fecha": "10/05/2024"
    })
    assert response.status_code == 201
    stock = response.json()["stock"]
    assert stock["stock_final"] == 11
    assert stock["fecha"] == "2024-05-10"

    updated = client.put(f"/api/v1/express/stock/{stock['id']}", headers=admin_headers, json={"pedidos_del_dia": 20})
    assert updated.status_code == 200
    assert updated.json()["stock"]["stock_final"] == 0

    listed = client.get("/api/v1/express/stock", headers=admin_headers, params={"punto_envio": "Centro", "fecha": "2024-05-10"})
    assert listed.json()["total"] == 1


def test_express_orders_respect_assigned_puntos(client, make_order, make_user, headers_for):
    make_order(punto_envio="Centro", delivery_day=date(2024, 5, 10))
    make_order(punto_envio="Norte", delivery_day=date(2024, 5, 10))
    make_order(payment_method="cash")
    user = make_user(permissions=["express:view"], puntos_envio=["Centro"])
    headers = headers_for(user)

    forbidden = client.get("/api/v1/express/orders", headers=headers, params={"punto_envio": "Norte"})
    assert forbidden.status_code == 403

    response = client.get("/api/v1/express/orders", headers=headers, params={"from": "2024-05-10"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["orders"][0]["punto_envio"] == "Centro"


def test_orders_count_by_day(client, admin_headers, make_order):
    make_order(punto_envio="Centro", created_at=datetime(2024, 5, 10, 15, 0))
    make_order(punto_envio="Centro", created_at=datetime(2024, 5, 11, 2, 0))
    make_order(punto_envio="Centro", created_at=datetime(2024, 5, 11, 4, 0))

    response = client.get("/api/v1/express/orders/count", headers=admin_headers, params={
        "punto_envio": "Centro", "fecha": "2024-05-10"
    })
    # 02:00 UTC del 11 sigue siendo el 10 en Argentina
    assert response.json()["count"] == 2


def test_orders_count_respects_assigned_puntos(client, make_user, headers_for):
    user = make_user(permissions=["express:view"], puntos_envio=["Norte"])
    response = client.get("/api/v1/express/orders/count", headers=headers_for(user), params={
        "punto_envio": "Centro", "fecha": "2024-05-10"
    })
    assert response.status_code == 403


def test_priority_roundtrip(client, admin_headers):
    saved = client.put("/api/v1/express/priority", headers=admin_headers, json={
        "fecha": "2024-05-10", "punto_envio": "Centro", "order_ids": [3, 1, 2]
    })
    assert saved.status_code == 200

    response = client.get("/api/v1/express/priority", headers=admin_headers, params={
        "fecha": "2024-05-10", "punto_envio": "Centro"
    })
    assert response.json()["order_ids"] == [3, 1, 2]

    empty = client.get("/api/v1/express/priority", headers=admin_headers, params={
        "fecha": "2024-05-11", "punto_envio": "Centro"
    })
    assert empty.json()["order_ids"] == []


def test_stock_rollover_after_cutoff(db, make_order):
    db.add_all([PuntoEnvio(nombre="Centro", cutoff_time="14:00"), PuntoEnvio(nombre="Norte", cutoff_time="18:00")])
    db.commit()
    _stock(db)
    _stock(db, producto="VACA", stock_inicial=1, llevamos=0, stock_final=1)
    _stock(db, punto_envio="Norte")
    make_order(
        punto_envio="Centro",
        delivery_day=date(2024, 5, 10),
        items=[{"name": "BOX PERRO POLLO", "options": [{"name": "5KG", "quantity": 3}]}],
    )

    service = ExpressService(db)
    now = datetime(2024, 5, 10, 15, 0, tzinfo=business_tz())
    result = service.perform_stock_rollover(now=now)

    assert result.today == "2024-05-10"
    assert result.next_day == "2024-05-11"
    assert result.puntos_procesados == ["Centro"]
    assert result.stock_creado == 2

    next_day = {s.producto: s for s in db.query(Stock).filter(Stock.fecha == "2024-05-11").all()}
    assert next_day["POLLO"].stock_inicial == 9
    assert next_day["POLLO"].stock_final == 9
    assert next_day["POLLO"].llevamos == 0
    assert next_day["VACA"].stock_inicial == 1

    again = service.perform_stock_rollover(now=now)
    assert again.stock_creado == 0


def test_stock_rollover_saturday_goes_to_monday(db):
    db.add(PuntoEnvio(nombre="Centro"))
    db.commit()
    _stock(db, fecha="2024-05-11")

    now = datetime(2024, 5, 11, 20, 0, tzinfo=business_tz())
    result = ExpressService(db).perform_stock_rollover(now=now)
    assert result.next_day == "2024-05-13"
    assert result.stock_creado == 1


def test_updates_reject_null(client, admin_headers):
    punto = client.post("/api/v1/express/puntos-envio", headers=admin_headers, json={"nombre": "Centro"}).json()
    response = client.put(
        f"/api/v1/express/puntos-envio/{punto['punto_envio']['id']}", headers=admin_headers, json={"nombre": None}
    )
    assert response.status_code == 422

    stock = client.post("/api/v1/express/stock", headers=admin_headers, json={
        "punto_envio": "Centro", "producto": "POLLO", "stock_inicial": 10, "fecha": "2024-05-10"
    }).json()["stock"]
    response = client.put(f"/api/v1/express/stock/{stock['id']}", headers=admin_headers, json={"llevamos": None})
    assert response.status_code == 422
