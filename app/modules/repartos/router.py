# app/modules/repartos/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions, get_admin_user
from .service import RepartoService
from .schemas import (
    RepartoEntryUpdate, WeekSaveRequest, WeekResponse, RepartosDataResponse,
    RepartosStatsResponse, WeeksOfMonthResponse, CleanupResponse, RepartosFilter
)

router = APIRouter()

@router.get("/", response_model=RepartosDataResponse)
async def get_repartos(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000),
    status: str = Query("all", pattern="^(all|completed|pending)$"),
    current_user = Depends(require_permissions(["repartos:view"])),
    db: Session = Depends(get_db)
):
    """Todas las semanas, filtrables por mes/año y estado"""
    service = RepartoService(db)
    return await service.get_all(RepartosFilter(month=month, year=year, status=status))

@router.get("/stats", response_model=RepartosStatsResponse)
async def repartos_stats(
    current_user = Depends(require_permissions(["repartos:view"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.get_stats()

@router.get("/weeks-of-month", response_model=WeeksOfMonthResponse)
async def weeks_of_month(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000),
    current_user = Depends(require_permissions(["repartos:view"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.get_weeks_of_month(month, year)

@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_old_weeks(
    current_user = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """Eliminar semanas de hace más de 6 meses (solo administradores)"""
    service = RepartoService(db)
    return await service.cleanup_old_weeks()

# ===== SEMANA =====

@router.get("/{week_key}", response_model=WeekResponse)
async def get_week(
    week_key: str,
    current_user = Depends(require_permissions(["repartos:view"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.get_week(week_key)

@router.put("/{week_key}", response_model=WeekResponse)
async def save_week(
    week_key: str,
    request: WeekSaveRequest,
    current_user = Depends(require_permissions(["repartos:edit"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.save_week(week_key, request.data)

@router.post("/{week_key}/init", response_model=WeekResponse)
async def initialize_week(
    week_key: str,
    current_user = Depends(require_permissions(["repartos:edit"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.initialize_week(week_key)

@router.delete("/{week_key}")
async def delete_week(
    week_key: str,
    current_user = Depends(require_permissions(["repartos:edit"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.delete_week(week_key)

# ===== FILAS =====

@router.post("/{week_key}/{day_key}/rows", response_model=WeekResponse)
async def add_row(
    week_key: str,
    day_key: str,
    current_user = Depends(require_permissions(["repartos:edit"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.add_row(week_key, day_key)

@router.patch("/{week_key}/{day_key}/{row_index}", response_model=WeekResponse)
async def update_entry(
    week_key: str,
    day_key: str,
    row_index: int,
    changes: RepartoEntryUpdate,
    current_user = Depends(require_permissions(["repartos:edit"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.update_entry(week_key, day_key, row_index, changes)

@router.post("/{week_key}/{day_key}/{row_index}/toggle", response_model=WeekResponse)
async def toggle_entry(
    week_key: str,
    day_key: str,
    row_index: int,
    current_user = Depends(require_permissions(["repartos:edit"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.toggle_entry(week_key, day_key, row_index)

@router.delete("/{week_key}/{day_key}/{row_index}", response_model=WeekResponse)
async def remove_row(
    week_key: str,
    day_key: str,
    row_index: int,
    current_user = Depends(require_permissions(["repartos:edit"])),
    db: Session = Depends(get_db)
):
    service = RepartoService(db)
    return await service.remove_row(week_key, day_key, row_index)
