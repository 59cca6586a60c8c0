import pytest

from app.shared.utils.products import (
    calculate_item_weight,
    categorize_product,
    get_sales_category,
    iter_item_lines,
    line_quantity,
)


@pytest.mark.parametrize("product, option, expected", [
    ("BOX PERRO POLLO", "5KG", 5.0),
    ("BOX PERRO VACA", "10 KG", 10.0),
    ("BOX PERRO CERDO", "", 10.0),
    ("BOX GATO POLLO", "", 5.0),
    ("BIG DOG POLLO", "15KG", 15.0),
    ("OREJAS DE VACA", "X 5", 0.0),
    ("HUESOS RECREATIVOS", "500 GRS", 0.0),
    ("CORNALITOS", "200G", 0.0),
    ("CALDO DE HUESOS", "1KG", 0.0),
])
def test_calculate_item_weight(product, option, expected):
    assert calculate_item_weight(product, option) == expected


def test_calculate_item_weight_handles_missing_names():
    assert calculate_item_weight(None, None) == 0.0


@pytest.mark.parametrize("name, expected", [
    ("BIG DOG VACA", "BIG DOG"),
    ("HUESOS CARNOSOS 5KG", "HUESOS CARNOSOS"),
    ("COMPLEMENTOS", "COMPLEMENTOS"),
    ("BOX PERRO POLLO", "PERRO"),
    ("BOX GATO CORDERO", "GATO"),
    ("OREJAS", "OTROS"),
])
def test_get_sales_category(name, expected):
    assert get_sales_category(name) == expected


def test_categorize_product():
    assert categorize_product("BIG DOG", "POLLO 15KG") == ("perro", "bigDogPollo")
    assert categorize_product("BOX GATO VACA") == ("gato", "gatoVaca")
    assert categorize_product("BOX PERRO CORDERO") == ("perro", "cordero")
    assert categorize_product("HUESOS CARNOSOS") == ("otros", "huesosCarnosos")
    assert categorize_product("HUESOS RECREATIVOS") == ("otros", "otros")


def test_item_lines_and_quantities():
    items = [
        {"name": "BOX PERRO POLLO", "options": [{"name": "5KG", "quantity": 2}, {"name": "10KG", "quantity": 1}]},
        {"name": "CALDO", "quantity": 3},
    ]
    lines = list(iter_item_lines(items))
    assert len(lines) == 3
    assert lines[2] == (items[1], None)
    assert [line_quantity(item, option) for item, option in lines] == [2, 1, 3]
