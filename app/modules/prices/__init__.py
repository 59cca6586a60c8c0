# app/modules/prices/__init__.py

"""
Módulo Prices - Precios con historial

- Precios por sección, producto, peso y tipo de precio
- Historial, precios vigentes y estadísticas
- Inicialización de períodos mensuales
- Cálculo del precio de productos y órdenes
- Catálogo de productos (productos gestor)
"""

from .router import router as prices_router
from .service import PriceService
from .repository import PriceRepository

__all__ = [
    "prices_router",
    "PriceService",
    "PriceRepository"
]
