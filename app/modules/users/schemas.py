from pydantic import BaseModel, Field, validator
from typing import List, Optional, Union

from app.core.auth.schemas import UserResponse
from app.shared.schemas.common import BaseResponse, reject_null

def _normalize_puntos(value):
    """Aceptar un string o una lista; siempre guardar lista"""
    if value is None:
        return value
    if isinstance(value, str):
        value = [value]
    return [p.strip() for p in value if p and p.strip()]

class UserCreateRequest(BaseModel):
    """Schema para crear usuario (solo administradores de usuarios)"""
    email: str = Field(..., min_length=3, description="Email del usuario")
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    last_name: str = Field("", description="Apellido")
    role: str = Field("user", pattern="^(admin|user)$")
    permissions: List[str] = []
    puntos_envio: Optional[Union[str, List[str]]] = None

    @validator('email')
    def validate_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError('Email inválido')
        return v

    @validator('puntos_envio')
    def validate_puntos(cls, v):
        return _normalize_puntos(v)

    class Config:
        json_schema_extra = {
            "example": {
                "email": "operador@barferalimento.com",
                "password": "password123",
                "name": "María",
                "last_name": "García",
                "role": "user",
                "permissions": ["express:view", "table:view"],
                "puntos_envio": ["La Plata"]
            }
        }

class UserUpdateRequest(BaseModel):
    """Solo se actualizan los campos enviados"""
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = None
    role: Optional[str] = Field(None, pattern="^(admin|user)$")
    permissions: Optional[List[str]] = None
    puntos_envio: Optional[Union[str, List[str]]] = None
    is_active: Optional[bool] = None

    not_null = reject_null('email', 'password', 'name', 'last_name', 'role', 'permissions', 'is_active')

    @validator('email')
    def validate_email(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError('Email inválido')
        return v

    @validator('puntos_envio')
    def validate_puntos(cls, v):
        return _normalize_puntos(v)

class ProfileUpdateRequest(BaseModel):
    """Edición del propio perfil"""
    name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = None
    email: Optional[str] = None

    not_null = reject_null('name', 'last_name', 'email')

    @validator('email')
    def validate_email(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError('Email inválido')
        return v

class UserDetailResponse(BaseResponse):
    user: UserResponse

class UserListResponse(BaseResponse):
    users: List[UserResponse]
    total: int

class PermissionInfo(BaseModel):
    key: str
    description: str

class PermissionListResponse(BaseResponse):
    permissions: List[PermissionInfo]
