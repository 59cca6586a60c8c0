# app/modules/users/router.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions
from .service import UserService
from .schemas import (
    UserCreateRequest, UserUpdateRequest, ProfileUpdateRequest,
    UserDetailResponse, UserListResponse, PermissionListResponse
)

router = APIRouter()

manage_users = require_permissions(["account:manage_users"])

# ===== PERFIL PROPIO =====

@router.put("/me/profile", response_model=UserDetailResponse)
async def update_own_profile(
    profile: ProfileUpdateRequest,
    current_user = Depends(require_permissions(["account:edit_own"])),
    db: Session = Depends(get_db)
):
    """Editar nombre, apellido y email propios"""
    service = UserService(db)
    return await service.update_profile(current_user, profile)

@router.get("/permissions", response_model=PermissionListResponse)
async def list_permissions(
    current_user = Depends(manage_users),
    db: Session = Depends(get_db)
):
    """Listado de permisos asignables"""
    service = UserService(db)
    return await service.list_permissions()

# ===== ADMINISTRACIÓN DE USUARIOS =====

@router.get("/", response_model=UserListResponse)
async def list_users(
    current_user = Depends(manage_users),
    db: Session = Depends(get_db)
):
    """Usuarios del gestor (sin incluir al actual), más nuevos primero"""
    service = UserService(db)
    return await service.list_users(current_user)

@router.post("/", response_model=UserDetailResponse, status_code=201)
async def create_user(
    user_data: UserCreateRequest,
    current_user = Depends(manage_users),
    db: Session = Depends(get_db)
):
    """
    Crear usuario

    - El email debe ser único (409 si ya existe)
    - Siempre se agrega el permiso `account:view_own`
    - `puntos_envio` acepta un string o una lista
    """
    service = UserService(db)
    return await service.create_user(user_data)

@router.get("/{user_id}", response_model=UserDetailResponse)
async def get_user(
    user_id: int,
    current_user = Depends(manage_users),
    db: Session = Depends(get_db)
):
    service = UserService(db)
    return await service.get_user(user_id)

@router.put("/{user_id}", response_model=UserDetailResponse)
async def update_user(
    user_id: int,
    user_data: UserUpdateRequest,
    current_user = Depends(manage_users),
    db: Session = Depends(get_db)
):
    service = UserService(db)
    return await service.update_user(user_id, user_data)

@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_user = Depends(manage_users),
    db: Session = Depends(get_db)
):
    """Eliminar usuario (no se puede eliminar el propio)"""
    service = UserService(db)
    return await service.delete_user(user_id, current_user)
