from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

from app.config.database import get_db
from app.core.auth.service import AuthService
from app.core.auth.schemas import UserLogin, TokenResponse, UserResponse, ChangePasswordRequest
from app.shared.database.models import User
from app.shared.schemas.common import BaseResponse
from app.core.auth.dependencies import get_current_user, require_permissions

logger = logging.getLogger(__name__)

router = APIRouter()

def _authenticate(db: Session, email: str, password: str) -> User:
    """Validar credenciales y estado del usuario"""
    user = db.query(User).filter(User.email == email.strip().lower()).first()

    if not user or not AuthService.verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email o contraseña incorrectos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuario inactivo"
        )

    return user

def _token_response(user: User) -> TokenResponse:
    token_data = {
        "user_id": user.id,
        "email": user.email,
        "role": user.role
    }
    access_token = AuthService.create_access_token(data=token_data)
    logger.info(f"Login exitoso: {user.email}")

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user=UserResponse.model_validate(user)
    )

@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Endpoint de login para obtener token de acceso

    **Parámetros:**
    - **username**: Email del usuario
    - **password**: Contraseña del usuario
    """
    user = _authenticate(db, form_data.username, form_data.password)
    return _token_response(user)

@router.post("/login-json", response_model=TokenResponse)
async def login_json(
    user_login: UserLogin,
    db: Session = Depends(get_db)
):
    """
    Endpoint de login alternativo que acepta JSON

    **Body:**
    ```json
        {
            "email": "user@example.com",
            "password": "password123"
        }
    """
    user = _authenticate(db, user_login.email, user_login.password)
    return _token_response(user)

@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Obtener información del usuario actual (permisos y puntos de envío)
    **Headers requeridos:**
    - Authorization: Bearer {token}
    """
    return UserResponse.model_validate(current_user)

@router.post("/change-password", response_model=BaseResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(require_permissions(["account:change_password"])),
    db: Session = Depends(get_db)
):
    """Cambiar la contraseña del usuario actual"""
    if not request.passwords_match():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Las contraseñas nuevas no coinciden"
        )

    if not AuthService.verify_password(request.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La contraseña actual es incorrecta"
        )

    current_user.password_hash = AuthService.get_password_hash(request.new_password)
    db.commit()
    logger.info(f"Contraseña actualizada: {current_user.email}")

    return BaseResponse(success=True, message="Contraseña actualizada exitosamente")

@router.post("/logout")
async def logout():
    """
    Logout (con JWT stateless, solo informativo)

    En el frontend debes eliminar el token del storage.
    """
    return {"message": "Logout exitoso. Elimina el token del cliente."}
