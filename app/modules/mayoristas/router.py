# app/modules/mayoristas/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions
from .service import MayoristaService
from .schemas import (
    ZONA_PATTERN, MayoristaCreate, MayoristaUpdate, KilosMes,
    MayoristaDetailResponse, MayoristaListResponse, PuntosVentaSearchResponse,
    VentasPorZonaResponse, MayoristaStatisticsResponse, PuntosVentaStatsResponse,
    ProductosMatrixResponse
)

router = APIRouter()

@router.get("/", response_model=MayoristaListResponse)
async def list_mayoristas(
    page_index: int = Query(0, ge=0),
    page_size: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None, description="Nombre, teléfono, email o zona"),
    zona: Optional[str] = Query(None, pattern=ZONA_PATTERN),
    activo: bool = Query(True),
    sort_by: str = Query("nombre"),
    sort_desc: bool = Query(False),
    current_user = Depends(require_permissions(["mayoristas:view"])),
    db: Session = Depends(get_db)
):
    """Listar puntos de venta mayoristas"""
    service = MayoristaService(db)
    return await service.list_mayoristas(page_index, page_size, search, zona, activo, sort_by, sort_desc)

@router.get("/search", response_model=PuntosVentaSearchResponse)
async def search_puntos_venta(
    q: Optional[str] = Query(None, description="Mínimo 2 caracteres"),
    current_user = Depends(require_permissions(["mayoristas:view"])),
    db: Session = Depends(get_db)
):
    """Autocompletar puntos de venta al cargar una orden mayorista"""
    service = MayoristaService(db)
    return await service.search_puntos_venta(q)

@router.get("/ventas-por-zona", response_model=VentasPorZonaResponse)
async def ventas_por_zona(
    current_user = Depends(require_permissions(["mayoristas:view_statistics"])),
    db: Session = Depends(get_db)
):
    service = MayoristaService(db)
    return await service.ventas_por_zona()

@router.get("/statistics", response_model=MayoristaStatisticsResponse)
async def mayorista_statistics(
    anio: Optional[int] = Query(None, ge=2000),
    current_user = Depends(require_permissions(["mayoristas:view_statistics"])),
    db: Session = Depends(get_db)
):
    service = MayoristaService(db)
    return await service.get_statistics(anio)

@router.get("/puntos-venta/stats", response_model=PuntosVentaStatsResponse)
async def puntos_venta_stats(
    date_from: Optional[date] = Query(None, alias="from", description="Día de creación desde (inclusive)"),
    date_to: Optional[date] = Query(None, alias="to", description="Día de creación hasta (inclusive)"),
    current_user = Depends(require_permissions(["mayoristas:view_statistics"])),
    db: Session = Depends(get_db)
):
    """Kilos y frecuencia de compra de cada punto de venta según sus órdenes"""
    service = MayoristaService(db)
    return await service.get_puntos_venta_stats(date_from, date_to)

@router.get("/productos-matrix", response_model=ProductosMatrixResponse)
async def productos_matrix(
    anio: Optional[int] = Query(None, ge=2000),
    mes: Optional[int] = Query(None, ge=1, le=12),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    current_user = Depends(require_permissions(["mayoristas:view_statistics"])),
    db: Session = Depends(get_db)
):
    service = MayoristaService(db)
    return await service.get_productos_matrix(anio, mes, date_from, date_to)

@router.post("/", response_model=MayoristaDetailResponse, status_code=201)
async def create_mayorista(
    data: MayoristaCreate,
    current_user = Depends(require_permissions(["mayoristas:create"])),
    db: Session = Depends(get_db)
):
    service = MayoristaService(db)
    return await service.create_mayorista(data)

@router.get("/{mayorista_id}", response_model=MayoristaDetailResponse)
async def get_mayorista(
    mayorista_id: int,
    current_user = Depends(require_permissions(["mayoristas:view"])),
    db: Session = Depends(get_db)
):
    service = MayoristaService(db)
    return await service.get_mayorista(mayorista_id)

@router.put("/{mayorista_id}", response_model=MayoristaDetailResponse)
async def update_mayorista(
    mayorista_id: int,
    data: MayoristaUpdate,
    current_user = Depends(require_permissions(["mayoristas:edit"])),
    db: Session = Depends(get_db)
):
    service = MayoristaService(db)
    return await service.update_mayorista(mayorista_id, data)

@router.delete("/{mayorista_id}")
async def delete_mayorista(
    mayorista_id: int,
    current_user = Depends(require_permissions(["mayoristas:delete"])),
    db: Session = Depends(get_db)
):
    service = MayoristaService(db)
    return await service.delete_mayorista(mayorista_id)

@router.post("/{mayorista_id}/kilos", response_model=MayoristaDetailResponse)
async def add_kilos_mes(
    mayorista_id: int,
    registro: KilosMes,
    current_user = Depends(require_permissions(["mayoristas:edit"])),
    db: Session = Depends(get_db)
):
    """Registrar los kilos vendidos de un mes (reemplaza si ya existe)"""
    service = MayoristaService(db)
    return await service.add_kilos_mes(mayorista_id, registro)
