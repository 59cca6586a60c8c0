from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List, Optional

from app.config.database import get_db
from app.shared.database.models import User
from app.core.auth.service import AuthService

security = HTTPBearer()

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Obtener usuario actual desde el token"""

    payload = AuthService.verify_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Token inválido o expirado")

    user_id: int = payload.get("user_id")
    if user_id is None:
        raise AuthenticationError("Payload del token inválido")

    user = db.query(User).filter(User.id == user_id).first()

    if user is None:
        raise AuthenticationError("Usuario no encontrado")

    if not user.is_active:
        raise AuthenticationError("Usuario inactivo")

    return user

def has_permission(user: User, permission: str) -> bool:
    """Los admin tienen todos los permisos"""
    if user.role == "admin":
        return True
    return permission in (user.permissions or [])

def require_roles(allowed_roles: List[str]):
    """Factory para crear dependency que requiere roles específicos"""
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Rol '{current_user.role}' no autorizado. Roles permitidos: {allowed_roles}"
            )
        return current_user
    return role_checker

def require_permissions(required: List[str]):
    """Factory para crear dependency que requiere todos los permisos indicados"""
    def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        missing = [p for p in required if not has_permission(current_user, p)]
        if missing:
            raise AuthorizationError(
                f"No tienes permisos suficientes. Requeridos: {missing}"
            )
        return current_user
    return permission_checker

def get_admin_user(current_user: User = Depends(require_roles(["admin"]))):
    """Dependency para administradores"""
    return current_user

def get_allowed_puntos_envio(user: User) -> Optional[List[str]]:
    """
    Puntos de envío visibles para el usuario.

    None significa sin restricción (admin o usuario sin puntos asignados).
    """
    if user.role == "admin":
        return None
    puntos = user.puntos_envio or []
    return list(puntos) if puntos else None

def can_access_punto_envio(user: User, punto_envio: Optional[str]) -> bool:
    allowed = get_allowed_puntos_envio(user)
    if allowed is None:
        return True
    return punto_envio in allowed
