from datetime import date, datetime

from app.modules.orders.service import matches_search, normalize_schedule_time
from app.shared.database.models import Mayorista, MayoristaPersona, Order, Price


def test_normalize_schedule_time():
    assert normalize_schedule_time("18.30") == "18:30"
    assert normalize_schedule_time("de 18hs a 20hs") == "de 18:00hs a 20:00hs"
    assert normalize_schedule_time("1830") == "18:30"
    assert normalize_schedule_time("18:30") == "18:30"
    assert normalize_schedule_time(None) is None


def test_matches_search_uses_spanish_terms():
    order = Order(
        status="confirmed",
        payment_method="bank-transfer",
        buyer={"name": "Ana", "lastName": "Pérez", "email": "ana@mail.com"},
        address={"address": "Calle 7", "city": "La Plata"},
        items=[{"name": "BOX PERRO POLLO"}],
        total=15000,
    )
    assert matches_search(order, "confirmado")
    assert matches_search(order, "transferencia ana")
    assert matches_search(order, "la plata pollo")
    assert not matches_search(order, "cancelado")
    assert matches_search(order, "   ")


def test_create_order_defaults_total(client, admin_headers):
    response = client.post("/api/v1/orders/", headers=admin_headers, json={
        "buyer": {"name": "Ana", "lastName": "Pérez", "email": "Ana@Mail.com"},
        "items": [{"name": "BOX PERRO POLLO", "options": [{"name": "5KG", "quantity": 2}]}],
        "sub_total": 20000,
        "shipping_price": 1500,
        "delivery_area": {"schedule": "18.30", "sameDayDelivery": False},
        "delivery_day": "15/05/2024",
    })
    assert response.status_code == 201
    order = response.json()["order"]
    assert order["total"] == 21500
    assert order["delivery_area"]["schedule"] == "18:30"
    assert order["delivery_day"] == "2024-05-15"
    assert order["buyer"]["email"] == "ana@mail.com"


def test_create_order_requires_items(client, admin_headers):
    response = client.post("/api/v1/orders/", headers=admin_headers, json={
        "buyer": {"name": "Ana"}, "items": []
    })
    assert response.status_code == 422


def test_list_excludes_express_orders(client, admin_headers, make_order):
    regular = make_order()
    make_order(payment_method="bank-transfer")
    make_order(delivery_area={"sameDayDelivery": True})

    response = client.get("/api/v1/orders/", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["orders"][0]["id"] == regular.id
    assert body["page_count"] == 1


def test_list_filters_and_paginates(client, admin_headers, make_order):
    for i in range(5):
        make_order(
            total=1000 * (i + 1),
            delivery_day=date(2024, 5, 10 + i),
            created_at=datetime(2024, 5, 1, 12, i),
        )
    make_order(order_type="mayorista", delivery_day=date(2024, 5, 12))

    response = client.get("/api/v1/orders/", headers=admin_headers, params={
        "page_size": 2, "page_index": 1, "sort_by": "total", "sort_desc": False,
        "order_type": "minorista",
    })
    body = response.json()
    assert body["total"] == 5
    assert body["page_count"] == 3
    assert [o["total"] for o in body["orders"]] == [3000, 4000]

    response = client.get("/api/v1/orders/", headers=admin_headers, params={
        "date_from": "2024-05-12", "date_to": "2024-05-13"
    })
    assert response.json()["total"] == 3


def test_list_pages_in_database_and_searches_all_pages(client, admin_headers, make_order, db):
    for i in range(4):
        make_order(total=1000 * (i + 1), delivery_day=date(2024, 5, 10 + i))
    make_order(total=500, delivery_day=None)
    make_order(total=9000, delivery_area={"sameDayDelivery": True, "schedule": "18:00"})
    make_order(total=9500, payment_method="transfer")

    express = make_order(total=100)
    express.delivery_area = {"sameDayDelivery": True}
    db.commit()
    assert express.same_day_delivery is True

    response = client.get("/api/v1/orders/", headers=admin_headers, params={
        "page_size": 2, "page_index": 2, "sort_by": "delivery_day", "sort_desc": True,
    })
    body = response.json()
    assert body["total"] == 5
    assert body["page_count"] == 3
    # sin fecha de entrega va al final
    assert [o["total"] for o in body["orders"]] == [500]

    response = client.get("/api/v1/orders/", headers=admin_headers, params={
        "page_size": 1, "page_index": 1, "sort_by": "total", "sort_desc": False, "search": "ana",
    })
    body = response.json()
    assert body["total"] == 5
    assert [o["total"] for o in body["orders"]] == [1000]


def test_export_csv(client, admin_headers, make_order):
    make_order(notes="tocar timbre")
    response = client.get("/api/v1/orders/export", headers=admin_headers)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.strip().splitlines()
    assert lines[0].startswith("id,fecha_creacion")
    assert "tocar timbre" in lines[1]
    assert "BOX PERRO POLLO 10KG x1" in lines[1]


def test_update_estado_envio(client, admin_headers, make_order):
    order = make_order()
    response = client.patch(
        f"/api/v1/orders/{order.id}/estado-envio", headers=admin_headers, json={"estado_envio": "en-viaje"}
    )
    assert response.status_code == 200
    assert response.json()["order"]["estado_envio"] == "en-viaje"

    invalid = client.patch(
        f"/api/v1/orders/{order.id}/estado-envio", headers=admin_headers, json={"estado_envio": "perdido"}
    )
    assert invalid.status_code == 422


def test_update_and_delete_order(client, admin_headers, make_order):
    order = make_order()
    response = client.put(f"/api/v1/orders/{order.id}", headers=admin_headers, json={"notes_own": "cliente vip"})
    assert response.status_code == 200
    assert response.json()["order"]["notes_own"] == "cliente vip"

    assert client.delete(f"/api/v1/orders/{order.id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/v1/orders/{order.id}", headers=admin_headers).status_code == 404


def test_whatsapp_mark_by_email(client, admin_headers, make_order):
    make_order()
    make_order()
    response = client.post("/api/v1/orders/whatsapp/mark", headers=admin_headers, json={"emails": ["ANA@mail.com"]})
    assert response.status_code == 200
    assert response.json()["updated_count"] == 2


def test_orders_require_table_permission(client, make_user, headers_for):
    user = make_user(permissions=["express:view"])
    response = client.get("/api/v1/orders/", headers=headers_for(user))
    assert response.status_code == 403


def test_update_order_rejects_null_required_fields(client, admin_headers, make_order):
    order = make_order()
    for field in ("total", "status", "items", "buyer"):
        response = client.put(f"/api/v1/orders/{order.id}", headers=admin_headers, json={field: None})
        assert response.status_code == 422

    cleared = client.put(f"/api/v1/orders/{order.id}", headers=admin_headers, json={"notes": None})
    assert cleared.status_code == 200


# ===== ÓRDENES MAYORISTAS =====

def _punto_de_venta(db, **fields):
    data = {"nombre": "Pet Shop Firulais", "zona": "CABA", "frecuencia": "SEMANAL", "fecha_inicio_ventas": date(2024, 3, 1)}
    data.update(fields)
    punto = Mayorista(**data)
    db.add(punto)
    db.commit()
    db.refresh(punto)
    return punto


def _mayorista_order(**fields):
    payload = {
        "buyer": {"name": "Juan", "lastName": "Gómez", "email": "juan@petshop.com", "phone": "1144440000"},
        "address": {"address": "Av. Corrientes 1234", "city": "CABA"},
        "items": [{"name": "BOX PERRO POLLO", "options": [{"name": "10KG", "quantity": 2}]}],
        "shipping_price": 500,
        "delivery_day": "2024-05-20",
    }
    payload.update(fields)
    return payload


def test_create_mayorista_order_prices_items(client, admin_headers, db):
    punto = _punto_de_venta(db)
    db.add(Price(
        section="PERRO", product="POLLO", weight="10KG", price_type="MAYORISTA", price=15000,
        effective_date=date(2024, 5, 1), month=5, year=2024
    ))
    db.commit()

    response = client.post("/api/v1/orders/mayorista", headers=admin_headers, json=_mayorista_order(
        punto_de_venta_id=punto.id
    ))
    assert response.status_code == 201
    order = response.json()["order"]
    assert order["order_type"] == "mayorista"
    assert order["punto_de_venta_id"] == punto.id
    assert order["sub_total"] == 30000
    assert order["total"] == 30500

    persona = db.query(MayoristaPersona).one()
    assert (persona.name, persona.last_name, persona.phone) == ("Juan", "Gómez", "1144440000")
    assert persona.address == {"address": "Av. Corrientes 1234", "city": "CABA"}


def test_create_mayorista_order_without_price(client, admin_headers, db):
    response = client.post("/api/v1/orders/mayorista", headers=admin_headers, json=_mayorista_order())
    assert response.status_code == 400
    assert "BOX PERRO POLLO" in response.json()["detail"]
    assert db.query(Order).count() == 0
    assert db.query(MayoristaPersona).count() == 0


def test_create_mayorista_order_with_total(client, admin_headers, db):
    response = client.post("/api/v1/orders/mayorista", headers=admin_headers, json=_mayorista_order(total=50000))
    assert response.status_code == 201
    order = response.json()["order"]
    assert order["total"] == 50000
    assert order["sub_total"] == 49500
    assert order["punto_de_venta_id"] is None


def test_create_mayorista_order_checks_punto_de_venta(client, admin_headers, db):
    cerrado = _punto_de_venta(db, activo=False)
    for punto_id in (cerrado.id, 999):
        response = client.post("/api/v1/orders/mayorista", headers=admin_headers, json=_mayorista_order(
            punto_de_venta_id=punto_id, total=1000
        ))
        assert response.status_code == 404

    missing_day = _mayorista_order(total=1000)
    del missing_day["delivery_day"]
    assert client.post("/api/v1/orders/mayorista", headers=admin_headers, json=missing_day).status_code == 422


def test_mayorista_buyers_are_saved_for_search(client, admin_headers, db):
    client.post("/api/v1/orders/mayorista", headers=admin_headers, json=_mayorista_order(total=1000))
    client.post("/api/v1/orders/mayorista", headers=admin_headers, json=_mayorista_order(
        total=2000, buyer={"name": "Juan", "lastName": "Gómez", "email": "", "phone": "1155559999"}
    ))
    client.post("/api/v1/orders/mayorista", headers=admin_headers, json=_mayorista_order(
        total=3000, buyer={"name": "Laura", "lastName": "Díaz", "email": "laura@vete.com"}
    ))

    response = client.get("/api/v1/orders/mayoristas/search", headers=admin_headers, params={"q": "góm"})
    personas = response.json()["personas"]
    assert len(personas) == 1
    assert personas[0]["email"] == "juan@petshop.com"
    assert personas[0]["phone"] == "1155559999"

    by_email = client.get("/api/v1/orders/mayoristas/search", headers=admin_headers, params={"q": "vete"})
    assert [p["name"] for p in by_email.json()["personas"]] == ["Laura"]

    short = client.get("/api/v1/orders/mayoristas/search", headers=admin_headers, params={"q": "j"})
    assert short.json()["personas"] == []
