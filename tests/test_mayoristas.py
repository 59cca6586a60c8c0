from datetime import date, datetime

import pytest

from app.modules.mayoristas.service import kilos_del_mes, upsert_kilos
from app.modules.mayoristas.wholesale import (
    ProductoMayorista, frecuencia_compra, item_matrix_quantity, match_item, sort_matrix_columns
)
from app.shared.database.models import Price
from app.shared.utils.dates import now_local

BASE = "/api/v1/mayoristas"


def _create(client, headers, **fields):
    payload = {
        "nombre": "Pet Shop Firulais",
        "zona": "CABA",
        "frecuencia": "SEMANAL",
        "fecha_inicio_ventas": "01/03/2024",
        "tipos_negocio": ["PET_SHOP", "PET_SHOP"],
        "contacto": {"telefono": "1144440000", "direccion": "Av. Corrientes 1234"},
    }
    payload.update(fields)
    response = client.post(f"{BASE}/", headers=headers, json=payload)
    assert response.status_code == 201
    return response.json()["mayorista"]


def test_upsert_kilos_replaces_month():
    kilos = upsert_kilos([{"mes": 5, "anio": 2024, "kilos": 100}], 5, 2024, 150)
    kilos = upsert_kilos(kilos, 6, 2024, 80)
    assert kilos == [{"mes": 5, "anio": 2024, "kilos": 150}, {"mes": 6, "anio": 2024, "kilos": 80}]
    assert kilos_del_mes(kilos, 5, 2024) == 150
    assert kilos_del_mes(kilos, 5, 2023) == 0


def test_create_mayorista(client, admin_headers):
    mayorista = _create(client, admin_headers)
    assert mayorista["activo"] is True
    assert mayorista["kilos_por_mes"] == []
    assert mayorista["fecha_inicio_ventas"] == "2024-03-01"
    assert mayorista["tipos_negocio"] == ["PET_SHOP"]
    assert mayorista["contacto"]["telefono"] == "1144440000"


def test_create_rejects_invalid_zona(client, admin_headers):
    response = client.post(f"{BASE}/", headers=admin_headers, json={
        "nombre": "X", "zona": "MARTE", "frecuencia": "SEMANAL", "fecha_inicio_ventas": "2024-03-01"
    })
    assert response.status_code == 422


def test_list_search_matches_zona_with_spaces(client, admin_headers):
    _create(client, admin_headers, nombre="Veterinaria Sur", zona="LA_PLATA")
    _create(client, admin_headers, nombre="Pet Norte", zona="NORTE")

    response = client.get(f"{BASE}/", headers=admin_headers, params={"search": "la plata"})
    body = response.json()
    assert body["total"] == 1
    assert body["mayoristas"][0]["nombre"] == "Veterinaria Sur"

    response = client.get(f"{BASE}/", headers=admin_headers, params={"zona": "NORTE"})
    assert [m["nombre"] for m in response.json()["mayoristas"]] == ["Pet Norte"]


def test_update_contacto(client, admin_headers):
    mayorista = _create(client, admin_headers)
    response = client.put(f"{BASE}/{mayorista['id']}", headers=admin_headers, json={
        "contacto": {"email": "firulais@mail.com"}, "tiene_freezer": True, "cantidad_freezers": 2
    })
    assert response.status_code == 200
    updated = response.json()["mayorista"]
    assert updated["contacto"]["email"] == "firulais@mail.com"
    assert updated["contacto"]["telefono"] == "1144440000"
    assert updated["cantidad_freezers"] == 2


def test_delete_is_soft(client, admin_headers):
    mayorista = _create(client, admin_headers)
    assert client.delete(f"{BASE}/{mayorista['id']}", headers=admin_headers).status_code == 200

    assert client.get(f"{BASE}/", headers=admin_headers).json()["total"] == 0
    inactive = client.get(f"{BASE}/", headers=admin_headers, params={"activo": False}).json()
    assert inactive["total"] == 1

    detail = client.get(f"{BASE}/{mayorista['id']}", headers=admin_headers).json()
    assert detail["mayorista"]["activo"] is False


def test_search_puntos_venta(client, admin_headers):
    _create(client, admin_headers)
    short = client.get(f"{BASE}/search", headers=admin_headers, params={"q": "f"})
    assert short.json()["puntos_venta"] == []

    response = client.get(f"{BASE}/search", headers=admin_headers, params={"q": "corrientes"})
    assert [p["nombre"] for p in response.json()["puntos_venta"]] == ["Pet Shop Firulais"]


def test_kilos_and_ventas_por_zona(client, admin_headers):
    now = now_local()
    first = _create(client, admin_headers, nombre="A", zona="SUR")
    second = _create(client, admin_headers, nombre="B", zona="SUR")
    _create(client, admin_headers, nombre="C", zona="CABA")

    client.post(f"{BASE}/{first['id']}/kilos", headers=admin_headers, json={"mes": now.month, "anio": now.year, "kilos": 100})
    response = client.post(
        f"{BASE}/{first['id']}/kilos", headers=admin_headers, json={"mes": now.month, "anio": now.year, "kilos": 120}
    )
    assert len(response.json()["mayorista"]["kilos_por_mes"]) == 1
    client.post(f"{BASE}/{second['id']}/kilos", headers=admin_headers, json={"mes": now.month, "anio": now.year, "kilos": 30})

    body = client.get(f"{BASE}/ventas-por-zona", headers=admin_headers).json()
    zonas = {z["zona"]: z for z in body["zonas"]}
    assert [z["zona"] for z in body["zonas"]] == ["CABA", "SUR"]
    assert zonas["SUR"]["total_mayoristas"] == 2
    assert zonas["SUR"]["total_kilos_ultimo_mes"] == 150
    assert zonas["CABA"]["total_kilos_ultimo_mes"] == 0


def test_statistics_average_over_months_with_data(client, admin_headers):
    mayorista = _create(client, admin_headers)
    client.post(f"{BASE}/{mayorista['id']}/kilos", headers=admin_headers, json={"mes": 1, "anio": 2023, "kilos": 100})
    client.post(f"{BASE}/{mayorista['id']}/kilos", headers=admin_headers, json={"mes": 3, "anio": 2023, "kilos": 50})

    body = client.get(f"{BASE}/statistics", headers=admin_headers, params={"anio": 2023}).json()
    stats = body["mayoristas"][0]
    assert stats["kilos_por_mes"][0] == 100
    assert stats["kilos_por_mes"][1] == 0
    assert stats["total_kilos"] == 150
    assert stats["promedio_mensual"] == 75
    assert body["total_kilos"] == 150


def test_kilos_month_validation(client, admin_headers):
    mayorista = _create(client, admin_headers)
    response = client.post(f"{BASE}/{mayorista['id']}/kilos", headers=admin_headers, json={"mes": 13, "anio": 2024, "kilos": 10})
    assert response.status_code == 422


def test_update_rejects_null_required_fields(client, admin_headers):
    mayorista = _create(client, admin_headers)
    for field in ("nombre", "zona", "fecha_inicio_ventas", "activo"):
        response = client.put(f"{BASE}/{mayorista['id']}", headers=admin_headers, json={field: None})
        assert response.status_code == 422

    cleared = client.put(f"{BASE}/{mayorista['id']}", headers=admin_headers, json={"notas": None})
    assert cleared.status_code == 200


# ===== ESTADÍSTICAS DESDE ÓRDENES =====

CATALOG = [
    ProductoMayorista("PERRO", "POLLO", "10KG", 10),
    ProductoMayorista("PERRO", "BIG DOG POLLO", "15KG", 15),
    ProductoMayorista("GATO", "VACA", "5KG", 5),
    ProductoMayorista("OTROS", "HUESOS CARNOSOS 5KG", "UNIDAD", 1),
    ProductoMayorista("RAW", "HIGADO 100GRS", "UNIDAD", 1),
    ProductoMayorista("RAW", "OREJAS X50", "UNIDAD", 1),
]


def test_match_item_from_store_names():
    def match(name, option=None):
        options = [{"name": option, "quantity": 1}] if option else []
        producto = match_item({"name": name, "options": options}, CATALOG)
        return (producto.section, producto.full_name) if producto else None

    assert match("BOX PERRO POLLO", "10KG") == ("PERRO", "POLLO 10KG")
    assert match("BOX GATO VACA", "5KG") == ("GATO", "VACA 5KG")
    assert match("BIG DOG (15KG)", "POLLO") == ("PERRO", "BIG DOG POLLO 15KG")
    assert match("HIGADO", "100GRS") == ("RAW", "HIGADO 100GRS")
    assert match("HUESOS CARNOSOS", "5KG") == ("OTROS", "HUESOS CARNOSOS 5KG")
    assert match("BOX GATO CERDO", "5KG") is None


def test_item_matrix_quantity_units():
    big_dog = {"name": "BIG DOG (15KG)", "options": [{"name": "POLLO", "quantity": 2}]}
    assert item_matrix_quantity(big_dog, CATALOG[1]) == 30

    higado = {"name": "HIGADO", "options": [{"name": "100GRS", "quantity": 3}]}
    assert item_matrix_quantity(higado, CATALOG[4]) == 3

    orejas = {"name": "OREJAS", "options": [{"name": "UNIDAD", "quantity": 2}]}
    assert item_matrix_quantity(orejas, CATALOG[5]) == 100


def test_frecuencia_compra():
    first = datetime(2024, 5, 1, 12, 0)
    assert frecuencia_compra([]) == "Sin pedidos"
    assert frecuencia_compra([first]) == "1 pedido (sin frecuencia)"
    assert frecuencia_compra([first, first]) == "Pedidos el mismo día"
    assert frecuencia_compra([first, datetime(2024, 5, 2, 12, 0)]) == "Cada 1 día"
    assert frecuencia_compra([datetime(2024, 5, 22, 12, 0), first, datetime(2024, 5, 8, 12, 0)]) == "Cada 11 días"


def test_sort_matrix_columns():
    columns = ["RAW - HIGADO 100GRS", "GATO VACA", "OTROS HUESOS CARNOSOS 5KG", "PERRO VACA", "PERRO POLLO", "PERRO BIG DOG POLLO"]
    assert sort_matrix_columns(columns) == [
        "PERRO BIG DOG POLLO", "PERRO POLLO", "PERRO VACA", "GATO VACA",
        "OTROS HUESOS CARNOSOS 5KG", "RAW - HIGADO 100GRS"
    ]


def _wholesale_price(db, section, product, weight=None, month=5, year=2024):
    db.add(Price(
        section=section, product=product, weight=weight, price_type="MAYORISTA", price=1000,
        effective_date=date(year, month, 1), month=month, year=year
    ))
    db.commit()


@pytest.fixture
def wholesale_orders(client, admin_headers, db, make_order):
    _wholesale_price(db, "PERRO", "POLLO", "10KG")
    _wholesale_price(db, "GATO", "VACA", "5KG")
    _wholesale_price(db, "OTROS", "HUESOS CARNOSOS 5KG")
    _wholesale_price(db, "RAW", "HIGADO 100GRS")
    _wholesale_price(db, "PERRO", "CORDERO", "10KG", month=4)

    firulais = _create(client, admin_headers)
    sur = _create(client, admin_headers, nombre="Veterinaria Sur", contacto={"email": "sur@mail.com"})
    cerrado = _create(client, admin_headers, nombre="Cerrado")
    client.delete(f"{BASE}/{cerrado['id']}", headers=admin_headers)

    def wholesale(punto, created_at, items):
        make_order(order_type="mayorista", punto_de_venta_id=punto["id"], created_at=created_at, items=items)

    wholesale(firulais, datetime(2024, 5, 2, 15, 0), [
        {"name": "BOX PERRO POLLO", "options": [{"name": "10KG", "quantity": 2}]},
        {"name": "HIGADO", "options": [{"name": "100GRS", "quantity": 3}]},
    ])
    wholesale(firulais, datetime(2024, 5, 12, 15, 0), [
        {"name": "BOX GATO VACA", "options": [{"name": "5KG", "quantity": 1}]},
        {"name": "HUESOS CARNOSOS", "options": [{"name": "5KG", "quantity": 1}]},
    ])
    wholesale(firulais, datetime(2024, 6, 5, 15, 0), [
        {"name": "BOX PERRO POLLO", "options": [{"name": "10KG", "quantity": 5}]},
    ])
    wholesale(cerrado, datetime(2024, 5, 3, 15, 0), [
        {"name": "BOX PERRO POLLO", "options": [{"name": "10KG", "quantity": 1}]},
    ])
    # minorista sin punto de venta: no cuenta
    make_order(created_at=datetime(2024, 5, 4, 15, 0))
    return {"firulais": firulais, "sur": sur, "cerrado": cerrado}


def test_puntos_venta_stats(client, admin_headers, wholesale_orders):
    response = client.get(f"{BASE}/puntos-venta/stats", headers=admin_headers, params={
        "from": "2024-05-01", "to": "2024-05-31"
    })
    assert response.status_code == 200
    stats = response.json()["stats"]
    assert [s["nombre"] for s in stats] == ["Pet Shop Firulais", "Veterinaria Sur"]

    firulais, sur = stats
    assert firulais["kg_totales"] == 30
    assert firulais["total_pedidos"] == 2
    assert firulais["promedio_kg_por_pedido"] == 15
    assert firulais["kg_ultima_compra"] == 10
    assert firulais["frecuencia_compra"] == "Cada 10 días"
    assert firulais["fecha_primer_pedido"] == "2024-05-02T15:00:00"
    assert firulais["telefono"] == "1144440000"

    assert sur["kg_totales"] == 0
    assert sur["frecuencia_compra"] == "Sin pedidos"
    assert sur["telefono"] == "Sin teléfono"


def test_puntos_venta_stats_without_range(client, admin_headers, wholesale_orders):
    stats = client.get(f"{BASE}/puntos-venta/stats", headers=admin_headers).json()["stats"]
    assert stats[0]["kg_totales"] == 80
    assert stats[0]["total_pedidos"] == 3


def test_productos_matrix(client, admin_headers, wholesale_orders):
    response = client.get(f"{BASE}/productos-matrix", headers=admin_headers, params={"anio": 2024, "mes": 5})
    assert response.status_code == 200
    body = response.json()
    assert body["date_from"] == "2024-05-01"
    assert body["date_to"] == "2024-05-31"
    assert body["product_names"] == [
        "PERRO POLLO", "GATO VACA", "OTROS HUESOS CARNOSOS 5KG", "RAW - HIGADO 100GRS"
    ]

    rows = {row["punto_venta_id"]: row for row in body["matrix"]}
    assert len(rows) == 3

    firulais = rows[wholesale_orders["firulais"]["id"]]
    assert firulais["productos"] == {
        "PERRO POLLO": 20, "GATO VACA": 5, "OTROS HUESOS CARNOSOS 5KG": 5, "RAW - HIGADO 100GRS": 3
    }
    assert firulais["total_kilos"] == 30
    assert rows[wholesale_orders["cerrado"]["id"]]["productos"]["PERRO POLLO"] == 10
    assert rows[wholesale_orders["sur"]["id"]]["total_kilos"] == 0


def test_wholesale_statistics_require_permission(client, make_user, headers_for):
    viewer = make_user(email="ventas@barfer.com", permissions=["mayoristas:view"])
    headers = headers_for(viewer)
    assert client.get(f"{BASE}/puntos-venta/stats", headers=headers).status_code == 403
    assert client.get(f"{BASE}/productos-matrix", headers=headers).status_code == 403
