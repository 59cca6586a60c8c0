# app/modules/express/sales_calculator.py
"""
Cálculo de unidades vendidas de un producto de stock a partir de órdenes.

El stock se carga por producto ("POLLO", sección "PERRO", peso "10KG")
mientras que los items de las órdenes usan el nombre de la tienda
("BOX PERRO POLLO" con opción "10KG"). Acá se decide si un item
corresponde a una fila de stock.
"""
import re
from typing import Iterable, Optional

from app.shared.database.models import Order

FLAVORS = ("POLLO", "VACA", "CORDERO", "CERDO", "CONEJO", "PAVO", "MIX")

_KG_SUFFIX = re.compile(r"\s*\(?\d+\s*KG\)?", re.IGNORECASE)
_KG_TOKEN = re.compile(r"(\d+\s*KG)", re.IGNORECASE)
_BOX_PREFIX = re.compile(r"^BOX\s+(PERRO|GATO)\s+", re.IGNORECASE)


def _strip_weight(text: str) -> str:
    return _KG_SUFFIX.sub("", text).strip()


def _normalized_weight(text: str) -> Optional[str]:
    match = _KG_TOKEN.search(text)
    return re.sub(r"\s+", "", match.group(1)).upper() if match else None


def _extract_flavor(item_name: str) -> str:
    return _strip_weight(_BOX_PREFIX.sub("", item_name))


def _first_flavor(text: str) -> Optional[str]:
    return next((f for f in FLAVORS if f in text), None)


def _section_allows(section: str, item_name: str, big_dog_item: bool, big_dog_stock: bool) -> bool:
    if "OTROS" in section:
        return True
    if "GATO" in section:
        return "GATO" in item_name
    if "PERRO" in section:
        if "GATO" in item_name:
            return False
        # BIG DOG solo con BIG DOG
        return big_dog_item == big_dog_stock
    return True


def _big_dog_matches(item_name: str, options, product: str, weight: Optional[str]) -> bool:
    stock_ident = f"{product} {weight or ''}".upper()

    flavor_option = next(
        (o for o in options if _first_flavor(o)),
        None
    )
    if flavor_option and flavor_option in stock_ident:
        return True

    clean_item = _strip_weight(item_name)
    clean_stock = _strip_weight(product)
    if clean_item == clean_stock or (clean_stock in clean_item and len(clean_stock) > 5):
        stock_flavor = _first_flavor(stock_ident)
        if stock_flavor:
            return stock_flavor in item_name
        return _first_flavor(item_name) is None
    return False


def _regular_matches(item_name: str, options, product: str, weight: Optional[str]) -> bool:
    main_option = options[0] if options else ""
    item_weight = _normalized_weight(f"{item_name} {' '.join(options)}")
    stock_weight = _normalized_weight(f"{product} {weight or ''}")
    if stock_weight is None and weight:
        stock_weight = re.sub(r"\s+", "", weight).upper()

    clean_item_product = _strip_weight(f"{item_name} {main_option}".strip())
    clean_product = _strip_weight(product)
    if not clean_product:
        return False
    flavor = _extract_flavor(item_name)

    name_match = (
        clean_item_product == clean_product
        or clean_product in clean_item_product
        or (clean_item_product and clean_item_product in clean_product)
        or clean_product in item_name
        or flavor == clean_product
    )
    # Con peso cargado el sabor debe ser exacto ("POLLO" no cuenta "POLLO CON VERDURAS")
    strict_flavor = stock_weight is None or flavor == clean_product

    if not (name_match and strict_flavor):
        return False
    if stock_weight or item_weight:
        return stock_weight == item_weight
    return True


def item_matches_stock(item: dict, product: str, section: str, weight: Optional[str]) -> bool:
    section = (section or "").upper()
    product = (product or "").upper().strip()
    if section and product.startswith(section):
        product = product[len(section):].strip()

    item_name = (item.get("name") or "").upper().strip()
    options = [(o.get("name") or "").upper().strip() for o in item.get("options") or []]
    big_dog_item = "BIG DOG" in item_name
    big_dog_stock = "BIG DOG" in product

    if not _section_allows(section, item_name, big_dog_item, big_dog_stock):
        return False

    if big_dog_item and big_dog_stock:
        return _big_dog_matches(item_name, options, product, weight)
    return _regular_matches(item_name, options, product, weight)


def calculate_sales_from_orders(
    product: str,
    section: Optional[str],
    weight: Optional[str],
    orders: Iterable[Order]
) -> float:
    """Unidades vendidas del producto en las órdenes dadas"""
    total = 0
    for order in orders:
        for item in order.items or []:
            if not item_matches_stock(item, product, section or "", weight):
                continue
            options = item.get("options") or []
            quantity = item.get("quantity") or (options[0].get("quantity") if options else None) or 1
            total += quantity
    return total
