# app/modules/express/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions
from .service import ExpressService
from .schemas import (
    PuntoEnvioCreate, PuntoEnvioUpdate, PuntoEnvioDetailResponse, PuntoEnvioListResponse,
    StockCreate, StockUpdate, StockDetailResponse, StockListResponse,
    OrderPriorityRequest, OrderPriorityResponse,
    ExpressOrdersResponse, OrderCountResponse
)

router = APIRouter()

# ===== PEDIDOS EXPRESS =====

@router.get("/orders", response_model=ExpressOrdersResponse)
async def get_express_orders(
    punto_envio: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    current_user = Depends(require_permissions(["express:view"])),
    db: Session = Depends(get_db)
):
    """
    Pedidos express (transferencia, envío en el día o con punto asignado)

    - Con solo `from` se devuelve ese único día
    - Los usuarios con puntos asignados solo ven esos puntos
    """
    service = ExpressService(db)
    return await service.get_express_orders(current_user, punto_envio, date_from, date_to)

@router.get("/orders/count", response_model=OrderCountResponse)
async def count_orders_by_day(
    punto_envio: str = Query(...),
    fecha: date = Query(...),
    current_user = Depends(require_permissions(["express:view"])),
    db: Session = Depends(get_db)
):
    service = ExpressService(db)
    return await service.count_orders_by_day(current_user, punto_envio, fecha)

# ===== PUNTOS DE ENVÍO =====

@router.get("/puntos-envio", response_model=PuntoEnvioListResponse)
async def list_puntos_envio(
    current_user = Depends(require_permissions(["express:view"])),
    db: Session = Depends(get_db)
):
    service = ExpressService(db)
    return await service.list_puntos_envio(current_user)

@router.post("/puntos-envio", response_model=PuntoEnvioDetailResponse, status_code=201)
async def create_punto_envio(
    data: PuntoEnvioCreate,
    current_user = Depends(require_permissions(["express:create"])),
    db: Session = Depends(get_db)
):
    """Crear punto de envío (nombre único sin distinguir mayúsculas)"""
    service = ExpressService(db)
    return await service.create_punto_envio(data)

@router.put("/puntos-envio/{punto_id}", response_model=PuntoEnvioDetailResponse)
async def update_punto_envio(
    punto_id: int,
    data: PuntoEnvioUpdate,
    current_user = Depends(require_permissions(["express:edit"])),
    db: Session = Depends(get_db)
):
    service = ExpressService(db)
    return await service.update_punto_envio(punto_id, data)

@router.delete("/puntos-envio/{punto_id}")
async def delete_punto_envio(
    punto_id: int,
    current_user = Depends(require_permissions(["express:delete"])),
    db: Session = Depends(get_db)
):
    service = ExpressService(db)
    return await service.delete_punto_envio(punto_id)

# ===== STOCK =====

@router.get("/stock", response_model=StockListResponse)
async def get_stock(
    punto_envio: str = Query(...),
    fecha: Optional[date] = Query(None),
    current_user = Depends(require_permissions(["express:view"])),
    db: Session = Depends(get_db)
):
    service = ExpressService(db)
    return await service.get_stock(punto_envio, fecha)

@router.post("/stock", response_model=StockDetailResponse, status_code=201)
async def create_stock(
    data: StockCreate,
    current_user = Depends(require_permissions(["express:create"])),
    db: Session = Depends(get_db)
):
    """Cargar stock; si no se envía stock_final = inicial + llevamos - pedidos (mínimo 0)"""
    service = ExpressService(db)
    return await service.create_stock(data)

@router.put("/stock/{stock_id}", response_model=StockDetailResponse)
async def update_stock(
    stock_id: int,
    data: StockUpdate,
    current_user = Depends(require_permissions(["express:edit"])),
    db: Session = Depends(get_db)
):
    service = ExpressService(db)
    return await service.update_stock(stock_id, data)

# ===== PRIORIDAD DE PEDIDOS =====

@router.get("/priority", response_model=OrderPriorityResponse)
async def get_priority(
    fecha: date = Query(...),
    punto_envio: str = Query(...),
    current_user = Depends(require_permissions(["express:view"])),
    db: Session = Depends(get_db)
):
    service = ExpressService(db)
    return await service.get_priority(fecha, punto_envio)

@router.put("/priority", response_model=OrderPriorityResponse)
async def save_priority(
    data: OrderPriorityRequest,
    current_user = Depends(require_permissions(["express:edit"])),
    db: Session = Depends(get_db)
):
    """Guardar el orden manual de los pedidos del día para un punto"""
    service = ExpressService(db)
    return await service.save_priority(data)
