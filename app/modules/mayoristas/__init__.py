# app/modules/mayoristas/__init__.py

"""
Módulo Mayoristas - Puntos de venta mayoristas

- ABM de mayoristas con baja lógica
- Kilos vendidos por mes
- Búsqueda para autocompletar órdenes
- Ventas por zona y estadísticas anuales
- Estadísticas y matriz de productos desde las órdenes mayoristas
"""

from .router import router as mayoristas_router
from .service import MayoristaService
from .repository import MayoristaRepository

__all__ = [
    "mayoristas_router",
    "MayoristaService",
    "MayoristaRepository"
]
