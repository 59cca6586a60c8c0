from app.modules.express.sales_calculator import calculate_sales_from_orders, item_matches_stock
from app.shared.database.models import Order


def _order(*items):
    return Order(items=list(items))


def test_box_matches_flavor_and_weight():
    item = {"name": "BOX PERRO POLLO", "options": [{"name": "5KG", "quantity": 2}]}
    assert item_matches_stock(item, "POLLO", "PERRO", "5KG")
    assert not item_matches_stock(item, "POLLO", "PERRO", "10KG")
    assert not item_matches_stock(item, "VACA", "PERRO", "5KG")


def test_cat_items_only_count_in_cat_section():
    item = {"name": "BOX GATO POLLO", "options": [{"name": "5KG", "quantity": 1}]}
    assert not item_matches_stock(item, "POLLO", "PERRO", "5KG")
    assert item_matches_stock(item, "POLLO", "GATO", "5KG")


def test_big_dog_only_matches_big_dog_stock():
    item = {"name": "BIG DOG (15KG)", "options": [{"name": "VACA", "quantity": 1}]}
    assert item_matches_stock(item, "BIG DOG VACA", "PERRO", "15KG")
    assert not item_matches_stock(item, "BIG DOG POLLO", "PERRO", "15KG")
    assert not item_matches_stock(item, "VACA", "PERRO", None)


def test_calculate_sales_sums_quantities():
    orders = [
        _order({"name": "BOX PERRO POLLO", "options": [{"name": "5KG", "quantity": 2}]}),
        _order(
            {"name": "BOX PERRO POLLO", "options": [{"name": "5KG", "quantity": 1}]},
            {"name": "BOX PERRO VACA", "options": [{"name": "5KG", "quantity": 4}]},
        ),
        _order({"name": "BOX PERRO POLLO", "quantity": 3, "options": [{"name": "10KG"}]}),
    ]
    assert calculate_sales_from_orders("POLLO", "PERRO", "5KG", orders) == 3
    assert calculate_sales_from_orders("POLLO", "PERRO", "10KG", orders) == 3
    assert calculate_sales_from_orders("CERDO", "PERRO", "5KG", orders) == 0
