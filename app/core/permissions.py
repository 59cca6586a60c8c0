# app/core/permissions.py
from typing import Iterable, List

DEFAULT_PERMISSION = "account:view_own"

# Permisos conocidos: "area:accion"
PERMISSIONS = {
    "account:view_own": "Ver su propia cuenta",
    "account:edit_own": "Editar su propio perfil",
    "account:change_password": "Cambiar su contraseña",
    "account:manage_users": "Administrar usuarios",
    "table:view": "Ver tabla de órdenes",
    "table:edit": "Editar órdenes",
    "table:delete": "Eliminar órdenes",
    "express:view": "Ver pedidos express",
    "express:create": "Crear en express (puntos, stock)",
    "express:edit": "Editar en express",
    "express:delete": "Eliminar en express",
    "clients:view": "Ver clientes",
    "clients:view_analytics": "Ver analíticas de clientes",
    "clients:send_email": "Enviar emails a clientes",
    "clients:send_whatsapp": "Marcar contacto por WhatsApp",
    "analytics:view": "Ver analíticas",
    "prices:view": "Ver precios",
    "prices:edit": "Editar precios",
    "mayoristas:view": "Ver mayoristas",
    "mayoristas:create": "Crear mayoristas",
    "mayoristas:edit": "Editar mayoristas",
    "mayoristas:delete": "Eliminar mayoristas",
    "mayoristas:view_statistics": "Ver estadísticas de mayoristas",
    "repartos:view": "Ver repartos",
    "repartos:edit": "Editar repartos",
}

ROLES = ("admin", "user")


def normalize_permissions(permissions: Iterable[str]) -> List[str]:
    """Deduplicar manteniendo el orden y agregar el permiso por defecto"""
    result = []
    for permission in list(permissions or []) + [DEFAULT_PERMISSION]:
        if permission not in result:
            result.append(permission)
    return result


def invalid_permissions(permissions: Iterable[str]) -> List[str]:
    return [p for p in permissions or [] if p not in PERMISSIONS]
