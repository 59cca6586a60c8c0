# app/modules/prices/calculator.py
"""
Reglas para calcular el precio de una orden con la lista de precios.

Los productos llegan formateados como "SECCION - PRODUCTO - PESO"
("PERRO - POLLO - 5KG") o, en órdenes viejas, solo con el nombre de la
tienda ("BOX PERRO POLLO" + opción "5KG").
"""
import re
from typing import List, Optional, Tuple

QUANTITY_SUFFIX_REGEX = re.compile(r"\s*-\s*x\d+\s*$", re.IGNORECASE)
BOX_PREFIX_REGEX = re.compile(r"^BOX\s+(PERRO|GATO)\s+", re.IGNORECASE)

RAW_HINTS = (
    "CORNALITOS", "GARRAS", "CALDO", "HUESOS RECREATIVO", "HUESO RECREATIVO",
    "HIGADO", "TRAQUEA", "OREJAS", "TREAT"
)


class PriceLookupError(Exception):
    """No hay precio para el producto pedido"""
    pass


def price_type_for(order_type: str, payment_method: Optional[str]) -> str:
    """Mayorista siempre MAYORISTA; minorista EFECTIVO o TRANSFERENCIA según el pago"""
    if order_type == "mayorista":
        return "MAYORISTA"
    return "EFECTIVO" if payment_method == "cash" else "TRANSFERENCIA"


def parse_formatted_product(formatted: str) -> Tuple[str, str, Optional[str]]:
    """
    Separar "SECCION - PRODUCTO - PESO" en sus partes.

    Ignora el sufijo de cantidad (" - x2") y acepta los formatos viejos
    "BOX PERRO POLLO - 5KG", "HUESOS CARNOSOS - 5KG" y "BOX DE COMPLEMENTOS - 1U".
    """
    cleaned = QUANTITY_SUFFIX_REGEX.sub("", formatted or "").strip()
    parts = [p.strip() for p in cleaned.split(" - ")]
    if len(parts) < 2:
        raise ValueError(f"Formato de producto inválido: {formatted}")

    section, product = parts[0].upper(), parts[1].upper()
    weight = parts[2].upper() if len(parts) > 2 and parts[2] else None

    if section.startswith("BOX ") and ("PERRO" in section or "GATO" in section):
        words = section.split()
        if len(words) >= 3:
            section, product, weight = words[1], " ".join(words[2:]), parts[1].upper()
    elif section == "OTROS" and ("HUESOS CARNOSOS" in product or "HUESO CARNOSO" in product):
        # El peso es parte del nombre: "HUESOS CARNOSOS 5KG"
        product = product.replace("HUESO CARNOSO", "HUESOS CARNOSOS")
        weight = None
    elif "HUESOS CARNOSOS" in section or "HUESO CARNOSO" in section:
        name = section.replace("HUESO CARNOSO", "HUESOS CARNOSOS")
        product = f"{name} {product}".strip()
        section, weight = "OTROS", None
    elif "BOX DE COMPLEMENTOS" in section or "BOX COMPLEMENTOS" in section:
        section, product, weight = "OTROS", parts[0].upper(), None

    if "CORNALITOS" in product:
        weight = None
    return section, product, weight


def deduce_section(product_name: str) -> str:
    """Sección probable de un item sin formato; PERRO por defecto"""
    name = (product_name or "").upper()
    if "GATO" in name:
        return "GATO"
    if "BOX DE COMPLEMENTOS" in name or "HUESOS CARNOSOS" in name or "HUESO CARNOSO" in name:
        return "OTROS"
    if any(hint in name for hint in RAW_HINTS):
        return "RAW"
    if "POLLO" in name and ("40GRS" in name or "100GRS" in name):
        return "RAW"
    return "PERRO"


def item_lookup_keys(item: dict) -> List[Tuple[str, str, Optional[str]]]:
    """
    Claves (sección, producto, peso) a probar para un item de orden, en orden:
    primero `full_name` si tiene formato, después lo deducido del nombre.
    """
    keys = []
    full_name = item.get("full_name") or ""
    if " - " in full_name:
        keys.append(parse_formatted_product(full_name))

    options = item.get("options") or []
    weight = (options[0].get("name") or None) if options else None
    name = (item.get("name") or "").strip().upper()
    section = deduce_section(name)
    if section in ("PERRO", "GATO"):
        name = BOX_PREFIX_REGEX.sub("", name)
    if "CORNALITOS" in name:
        weight = None
    keys.append((section, name, weight.upper() if weight else None))
    return keys


def item_quantity(item: dict) -> float:
    options = item.get("options") or []
    if options and options[0].get("quantity"):
        return options[0]["quantity"]
    return 1
