# app/modules/orders/__init__.py

"""
Módulo Orders - Tabla de órdenes

- Listado paginado con búsqueda, fechas de entrega y tipo de orden
- Alta, edición y baja de órdenes
- Estado de envío y marcas de contacto por WhatsApp
- Exportación a CSV
"""

from .router import router as orders_router
from .service import OrderService
from .repository import OrderRepository

__all__ = [
    "orders_router",
    "OrderService",
    "OrderRepository"
]
