# app/modules/mayoristas/wholesale.py
"""
Productos mayoristas y cómo se cuentan en las órdenes de los puntos de venta.

El catálogo sale de los precios MAYORISTA activos. Cada item de una orden
se asocia a un producto del catálogo para sumar kilos (o unidades, en los
productos por gramos) por punto de venta.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from app.shared.utils.products import calculate_item_weight

UNIT_MULTIPLIER_REGEX = re.compile(r"X(\d+)", re.IGNORECASE)
GRAMS_OPTION_REGEX = re.compile(r"\d+\s*GRS?", re.IGNORECASE)

NO_WEIGHT = "UNIDAD"

# Orden de las columnas de la matriz
MATRIX_ORDER = (
    ("BIG DOG POLLO", 1), ("BIG DOG VACA", 2),
    ("HUESOS CARNOSOS 5KG", 30),
    ("BOX COMPLEMENTOS", 40), ("GARRAS", 41), ("CORNALITOS 200GRS", 42),
    ("HUESOS RECREATIVOS", 43), ("CALDO DE HUESOS", 44), ("CORNALITOS 30GRS", 45),
)
PERRO_FLAVORS = ("POLLO", "CERDO", "VACA", "CORDERO")
GATO_FLAVORS = ("POLLO", "VACA", "CORDERO")
RAW_ORDER = ("HIGADO 100GRS", "HIGADO 40GRS", "OREJAS", "POLLO 100GRS", "POLLO 40GRS", "TRAQUEA X1", "TRAQUEA X2")


@dataclass
class ProductoMayorista:
    section: str
    product: str
    weight: str
    kilos: float

    @property
    def full_name(self) -> str:
        return self.product if self.weight == NO_WEIGHT else f"{self.product} {self.weight}"


def normalize_name(name: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().upper())


def unit_multiplier(text: Optional[str]) -> int:
    """X50 -> 50; 1 si no hay multiplicador"""
    match = UNIT_MULTIPLIER_REGEX.search(text or "")
    return int(match.group(1)) if match else 1


def build_catalog(prices: Iterable) -> List[ProductoMayorista]:
    """Un producto por sección y nombre completo; sin kilos en el peso cuenta como 1"""
    catalog = {}
    for price in prices:
        section = normalize_name(price.section) or "OTROS"
        weight = normalize_name(price.weight) or NO_WEIGHT
        kilos = calculate_item_weight("", price.weight or "")
        producto = ProductoMayorista(section, normalize_name(price.product), weight, kilos if kilos > 0 else 1)
        catalog.setdefault((section, producto.full_name), producto)
    return list(catalog.values())


def detect_section(name: str, options: List[dict]) -> Optional[str]:
    if "GATO" in name:
        return "GATO"
    if "PERRO" in name or "BIG DOG" in name:
        return "PERRO"
    for option in options:
        option_name = option.get("name") or ""
        if GRAMS_OPTION_REGEX.search(option_name) or UNIT_MULTIPLIER_REGEX.search(option_name):
            return "RAW"
    return None


def _has_words(name: str, product: str) -> bool:
    words = product.split()
    return bool(words) and all(word in name for word in words)


def match_item(item: dict, catalog: List[ProductoMayorista]) -> Optional[ProductoMayorista]:
    """
    Producto del catálogo para un item de orden, o None.

    Prueba de lo más exacto a lo más laxo: nombre completo, nombre más
    opción, peso de la opción, nombre de producto, sabor de BOX o BIG DOG
    y por último todas las palabras del producto dentro del nombre.
    """
    name = normalize_name(item.get("name") or item.get("id"))
    options = item.get("options") or []
    option_names = [normalize_name(o.get("name")) for o in options if o.get("name")]
    section = detect_section(name, options)
    candidates = [p for p in catalog if p.section == section] if section else catalog

    for producto in candidates:
        if producto.full_name == name:
            return producto

    for option_name in option_names:
        for producto in candidates:
            if section == "RAW":
                if producto.full_name == f"{name} {option_name}":
                    return producto
            elif producto.weight == option_name and _has_words(name, producto.product):
                return producto

    for producto in candidates:
        if producto.product == name:
            return producto

    for producto in candidates:
        if _has_words(name, producto.product) and producto.weight in name:
            return producto

    if section == "PERRO" and "BIG DOG" in name and option_names:
        for producto in candidates:
            if producto.product == f"BIG DOG {option_names[0]}":
                return producto

    if section in ("PERRO", "GATO"):
        flavor = name.replace(f"BOX {section} ", "").strip()
        for producto in candidates:
            if producto.product == flavor:
                return producto

    # "HUESOS CARNOSOS" + opción "5KG" = "HUESOS CARNOSOS 5KG"
    for option_name in option_names:
        for producto in candidates:
            if producto.product == f"{name} {option_name}":
                return producto

    for producto in candidates:
        if _has_words(name, producto.product):
            return producto
    return None


def counts_in_total(producto: ProductoMayorista) -> bool:
    """Suman kilos PERRO, GATO (incluye BIG DOG) y los huesos carnosos; complementos y RAW no"""
    if producto.section in ("PERRO", "GATO"):
        return True
    return producto.section == "OTROS" and "HUESOS CARNOSOS" in producto.product


def item_kilos(item: dict, producto: ProductoMayorista) -> float:
    """Kilos de un item para las estadísticas de puntos de venta"""
    options = item.get("options") or []
    if not options:
        return producto.kilos * unit_multiplier(producto.weight)

    total = 0.0
    for option in options:
        quantity = option.get("quantity") or 0
        kilos = calculate_item_weight("", option.get("name") or "")
        if kilos > 0:
            total += kilos * quantity
        else:
            total += producto.kilos * quantity * unit_multiplier(producto.weight)
    return total


def item_matrix_quantity(item: dict, producto: ProductoMayorista) -> float:
    """
    Cantidad de un item para la matriz: kilos en los productos por kilo y
    unidades en los productos por gramos.
    """
    name = normalize_name(item.get("name"))
    in_grams = "GRS" in name or "GRS" in producto.full_name
    is_orejas = "OREJA" in name or "OREJA" in producto.full_name
    orejas_multiplier = unit_multiplier(producto.product) if is_orejas else 1
    big_dog_kilos = calculate_item_weight(name, "") if "BIG DOG" in name else 0

    options = item.get("options") or []
    if not options:
        return producto.kilos * unit_multiplier(producto.weight)

    total = 0.0
    for option in options:
        quantity = option.get("quantity") or 0
        option_name = normalize_name(option.get("name"))
        if "GRS" in option_name or in_grams:
            total += quantity
        elif big_dog_kilos > 0:
            total += big_dog_kilos * quantity
        elif orejas_multiplier > 1:
            total += quantity * orejas_multiplier
        else:
            kilos = calculate_item_weight("", option_name)
            if kilos > 0:
                total += kilos * quantity
            else:
                total += producto.kilos * quantity * unit_multiplier(producto.weight)
    return total


def order_kilos(order, catalog: List[ProductoMayorista]) -> float:
    total = 0.0
    for item in order.items or []:
        producto = match_item(item, catalog)
        if producto and counts_in_total(producto):
            total += item_kilos(item, producto)
    return total


def frecuencia_compra(fechas: List[datetime]) -> str:
    """Promedio de días entre pedidos, como texto"""
    if not fechas:
        return "Sin pedidos"
    if len(fechas) == 1:
        return "1 pedido (sin frecuencia)"

    ordered = sorted(fechas)
    days = (ordered[-1] - ordered[0]).total_seconds() / 86400
    average = int(days / (len(ordered) - 1) + 0.5)
    if average == 0:
        return "Pedidos el mismo día"
    if average == 1:
        return "Cada 1 día"
    return f"Cada {average} días"


def matrix_column(producto: ProductoMayorista) -> str:
    """Nombre de la columna del producto: "PERRO POLLO", "RAW - HIGADO 100GRS" """
    if producto.section == "RAW":
        name = f"RAW - {producto.full_name}"
        if re.match(r"RAW -\s*OREJA", name):
            return "RAW - OREJAS"
        return name
    return f"{producto.section} {producto.product}"


def _column_priority(column: str) -> int:
    for name, priority in MATRIX_ORDER[:2]:
        if name in column:
            return priority
    if column.startswith("PERRO "):
        flavor = next((i for i, f in enumerate(PERRO_FLAVORS) if f in column), len(PERRO_FLAVORS))
        return 10 + flavor
    if column.startswith("GATO "):
        flavor = next((i for i, f in enumerate(GATO_FLAVORS) if f in column), len(GATO_FLAVORS))
        return 20 + flavor
    for name, priority in MATRIX_ORDER[2:]:
        if name in column:
            return priority
    if column.startswith("RAW -"):
        return 50 + next((i for i, n in enumerate(RAW_ORDER) if n in column), len(RAW_ORDER))
    return 999


def sort_matrix_columns(columns: Iterable[str]) -> List[str]:
    return sorted(set(columns), key=lambda c: (_column_priority(c), c))


def matrix_row(orders: Iterable, catalog: List[ProductoMayorista], columns: List[str]) -> dict:
    """Cantidad por columna y total de kilos de las órdenes de un punto de venta"""
    productos = {column: 0.0 for column in columns}
    total_kilos = 0.0
    for order in orders:
        for item in order.items or []:
            producto = match_item(item, catalog)
            if not producto:
                continue
            column = matrix_column(producto)
            if column not in productos:
                continue
            quantity = item_matrix_quantity(item, producto)
            productos[column] += quantity
            if counts_in_total(producto):
                total_kilos += quantity
    return {"productos": productos, "total_kilos": total_kilos}
