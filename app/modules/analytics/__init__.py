# app/modules/analytics/__init__.py

"""
Módulo Analytics - Tableros por rango de fechas

- Órdenes por mes
- Ventas por categoría de producto
- Kilos por mes y tipo de cliente
- Estadísticas por tipo de entrega
- Resumen con período de comparación
"""

from .router import router as analytics_router
from .service import AnalyticsService

__all__ = [
    "analytics_router",
    "AnalyticsService"
]
