# app/modules/express/__init__.py

"""
Módulo Express - Pedidos del día por punto de envío

- Pedidos express filtrados por punto y rango de días
- Puntos de envío con hora de corte
- Stock diario por producto y rollover al próximo día hábil
- Prioridad manual de pedidos
"""

from .router import router as express_router
from .service import ExpressService
from .repository import ExpressRepository

__all__ = [
    "express_router",
    "ExpressService",
    "ExpressRepository"
]
