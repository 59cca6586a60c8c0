# app/modules/clients/__init__.py

"""
Módulo Clients - Analíticas y segmentación de clientes

- Perfiles de clientes armados desde las órdenes
- Categorías de comportamiento y de gasto
- Ocultar/mostrar clientes y marcas de contacto por WhatsApp
"""

from .router import router as clients_router
from .service import ClientService

__all__ = [
    "clients_router",
    "ClientService"
]
