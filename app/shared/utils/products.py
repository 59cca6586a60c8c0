# app/shared/utils/products.py
"""
Reglas sobre nombres de productos: peso en kilos y categorías.

Los nombres vienen de la tienda en mayúsculas ("BOX PERRO POLLO",
"BIG DOG VACA") y las opciones suelen llevar el peso ("5KG", "10KG").
"""
import re
from typing import Optional, Tuple

GRAMS_REGEX = re.compile(r"(\d+)\s*GRS", re.IGNORECASE)
WEIGHT_REGEX = re.compile(r"(\d+(?:\.\d+)?)\s*K?G", re.IGNORECASE)

EXCLUDED_WEIGHT_PRODUCTS = ("CORNALITO", "GARRA", "CALDO", "COMPLEMENTO")

BIG_DOG_WEIGHT = 15.0
BOX_GATO_WEIGHT = 5.0
BOX_PERRO_WEIGHT = 10.0

SALES_CATEGORIES = ("BIG DOG", "HUESOS CARNOSOS", "COMPLEMENTOS", "PERRO", "GATO")


def calculate_item_weight(product_name: Optional[str] = "", option_name: Optional[str] = "") -> float:
    """
    Peso en kilos de una unidad de producto.

    Devuelve 0 para productos que no suman kilos (orejas, porciones en
    gramos, cornalitos, garras, caldos y complementos).
    """
    product = (product_name or "").upper()
    option = (option_name or "").upper()
    combined = f"{product} {option}"

    if "OREJA" in product:
        return 0.0

    grams = GRAMS_REGEX.search(combined)
    if grams and int(grams.group(1)) < 1000:
        return 0.0

    if any(name in product for name in EXCLUDED_WEIGHT_PRODUCTS):
        return 0.0

    if "BIG DOG" in product:
        return BIG_DOG_WEIGHT

    # Primero la opción, después el nombre
    for text in (option, product):
        match = WEIGHT_REGEX.search(text)
        if match:
            return float(match.group(1))

    if "BOX" in product:
        return BOX_GATO_WEIGHT if "GATO" in product else BOX_PERRO_WEIGHT

    return 0.0


def get_sales_category(product_name: Optional[str]) -> str:
    """Categoría para las ventas por categoría; OTROS si no aplica"""
    name = (product_name or "").lower()
    if "big dog" in name:
        return "BIG DOG"
    if "huesos" in name:
        return "HUESOS CARNOSOS"
    if "complement" in name:
        return "COMPLEMENTOS"
    if "perro" in name:
        return "PERRO"
    if "gato" in name:
        return "GATO"
    return "OTROS"


def categorize_product(product_name: Optional[str], option_name: Optional[str] = "") -> Tuple[str, str]:
    """
    Categoría y subcategoría para las estadísticas de kilos.

    Retorna (categoria, subcategoria) con categoria en perro/gato/otros.
    """
    name = (product_name or "").lower()
    full_name = f"{name} {(option_name or '').lower()}"

    if "big dog" in name:
        if "pollo" in full_name:
            return "perro", "bigDogPollo"
        if "vaca" in full_name:
            return "perro", "bigDogVaca"
        return "perro", "bigDog"

    if "gato" in name:
        if "pollo" in full_name:
            return "gato", "gatoPollo"
        if "vaca" in full_name:
            return "gato", "gatoVaca"
        if "cordero" in full_name:
            return "gato", "gatoCordero"
        return "gato", "gato"

    for flavor in ("pollo", "vaca", "cerdo", "cordero"):
        if flavor in full_name:
            return "perro", flavor

    if (
        ("huesos carnosos" in name or "hueso carnoso" in name)
        and "recreativo" not in name
        and "caldo" not in name
    ):
        return "otros", "huesosCarnosos"

    return "otros", "otros"


def line_quantity(item: dict, option: Optional[dict]) -> float:
    """Cantidad de una línea: item.quantity si existe, si no la de la opción"""
    quantity = item.get("quantity")
    if quantity is None and option:
        quantity = option.get("quantity")
    if quantity is None:
        quantity = 1
    return quantity


def iter_item_lines(order_items):
    """
    Recorre (item, opcion) de una lista de items.

    Los items sin opciones se recorren una vez con opción None.
    """
    for item in order_items or []:
        options = item.get("options") or []
        if not options:
            yield item, None
            continue
        for option in options:
            yield item, option
