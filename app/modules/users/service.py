from fastapi import HTTPException
from sqlalchemy.orm import Session
import logging

from app.core.auth.schemas import UserResponse
from app.core.auth.service import AuthService
from app.core.permissions import PERMISSIONS, normalize_permissions, invalid_permissions
from app.shared.database.models import User
from .repository import UserRepository
from .schemas import (
    UserCreateRequest, UserUpdateRequest, ProfileUpdateRequest,
    UserDetailResponse, UserListResponse, PermissionInfo, PermissionListResponse
)

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = UserRepository(db)

    def _validate_permissions(self, permissions):
        invalid = invalid_permissions(permissions)
        if invalid:
            raise HTTPException(
                status_code=400,
                detail=f"Permisos inválidos: {', '.join(invalid)}"
            )

    def _ensure_email_available(self, email: str, user_id: int = None):
        existing = self.repository.get_by_email(email)
        if existing and existing.id != user_id:
            raise HTTPException(
                status_code=409,
                detail="Ya existe un usuario con este email"
            )

    # ===== USUARIOS CRUD =====

    async def create_user(self, data: UserCreateRequest) -> UserDetailResponse:
        """Crear usuario con contraseña hasheada y permiso por defecto"""
        try:
            self._ensure_email_available(data.email)
            self._validate_permissions(data.permissions)

            user = self.repository.create({
                "email": data.email,
                "password_hash": AuthService.get_password_hash(data.password),
                "name": data.name.strip(),
                "last_name": (data.last_name or "").strip(),
                "role": data.role,
                "permissions": normalize_permissions(data.permissions),
                "puntos_envio": data.puntos_envio or [],
                "is_active": True,
            })
            logger.info(f"Usuario creado: {user.email} (rol {user.role})")

            return UserDetailResponse(
                success=True,
                message="Usuario creado exitosamente",
                user=UserResponse.model_validate(user)
            )

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creando usuario: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error creando usuario: {str(e)}")

    async def list_users(self, current_user: User) -> UserListResponse:
        """Listar usuarios excepto el actual"""
        try:
            users = self.repository.list_excluding(current_user.id)
            return UserListResponse(
                success=True,
                message=f"{len(users)} usuarios encontrados",
                users=[UserResponse.model_validate(u) for u in users],
                total=len(users)
            )
        except Exception as e:
            logger.error(f"Error listando usuarios: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error listando usuarios: {str(e)}")

    async def get_user(self, user_id: int) -> UserDetailResponse:
        user = self.repository.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Usuario no encontrado")
        return UserDetailResponse(
            success=True,
            message="Usuario encontrado",
            user=UserResponse.model_validate(user)
        )

    async def update_user(self, user_id: int, data: UserUpdateRequest) -> UserDetailResponse:
        """Actualizar solo los campos enviados; la contraseña se re-hashea si viene"""
        try:
            user = self.repository.get_by_id(user_id)
            if not user:
                raise HTTPException(status_code=404, detail="Usuario no encontrado")

            changes = data.model_dump(exclude_unset=True)
            password = changes.pop("password", None)

            if changes.get("email"):
                self._ensure_email_available(changes["email"], user_id)
            if "permissions" in changes and changes["permissions"] is not None:
                self._validate_permissions(changes["permissions"])
                changes["permissions"] = normalize_permissions(changes["permissions"])
            if "puntos_envio" in changes and changes["puntos_envio"] is None:
                changes["puntos_envio"] = []
            if password:
                changes["password_hash"] = AuthService.get_password_hash(password)

            changes = {k: v for k, v in changes.items() if v is not None}
            user = self.repository.update(user, changes)
            logger.info(f"Usuario actualizado: {user.email}")

            return UserDetailResponse(
                success=True,
                message="Usuario actualizado exitosamente",
                user=UserResponse.model_validate(user)
            )

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error actualizando usuario {user_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error actualizando usuario: {str(e)}")

    async def delete_user(self, user_id: int, current_user: User) -> dict:
        if user_id == current_user.id:
            raise HTTPException(status_code=400, detail="No puedes eliminar tu propio usuario")

        user = self.repository.get_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Usuario no encontrado")

        try:
            self.repository.delete(user)
            logger.info(f"Usuario eliminado: {user_id}")
            return {"success": True, "message": "Usuario eliminado exitosamente"}
        except Exception as e:
            logger.error(f"Error eliminando usuario {user_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error eliminando usuario: {str(e)}")

    # ===== PERFIL PROPIO =====

    async def update_profile(self, current_user: User, data: ProfileUpdateRequest) -> UserDetailResponse:
        try:
            changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
            if changes.get("email"):
                self._ensure_email_available(changes["email"], current_user.id)

            user = self.repository.update(current_user, changes)
            return UserDetailResponse(
                success=True,
                message="Perfil actualizado exitosamente",
                user=UserResponse.model_validate(user)
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error actualizando perfil: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error actualizando perfil: {str(e)}")

    async def list_permissions(self) -> PermissionListResponse:
        return PermissionListResponse(
            success=True,
            message="Permisos disponibles",
            permissions=[
                PermissionInfo(key=key, description=description)
                for key, description in PERMISSIONS.items()
            ]
        )
