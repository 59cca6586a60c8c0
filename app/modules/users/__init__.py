# app/modules/users/__init__.py

"""
Módulo Users - Usuarios y permisos del gestor

- Alta, edición y baja de usuarios (requiere `account:manage_users`)
- Edición del propio perfil
- Listado de permisos disponibles
"""

from .router import router as users_router
from .service import UserService
from .repository import UserRepository

__all__ = [
    "users_router",
    "UserService",
    "UserRepository"
]
