# app/modules/repartos/__init__.py

"""
Módulo Repartos - Checklist semanal de repartos

- Semanas identificadas por su lunes, días 1 (lunes) a 6 (sábado)
- Alta, edición y marcado de filas
- Estadísticas y limpieza de semanas viejas
"""

from .router import router as repartos_router
from .service import RepartoService

__all__ = [
    "repartos_router",
    "RepartoService"
]
