# app/modules/analytics/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions
from .service import AnalyticsService
from .schemas import (
    OrdersByMonthResponse, CategorySalesResponse, QuantityStatsResponse,
    DeliveryTypeStatsResponse, AnalyticsSummaryResponse
)

router = APIRouter()

analytics_viewer = require_permissions(["analytics:view"])

@router.get("/orders-by-month", response_model=OrdersByMonthResponse)
async def orders_by_month(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    compare: bool = Query(False, description="Comparar con el período anterior"),
    compare_start_date: Optional[date] = Query(None),
    compare_end_date: Optional[date] = Query(None),
    current_user = Depends(analytics_viewer),
    db: Session = Depends(get_db)
):
    """Órdenes, facturación y clientes únicos por mes"""
    service = AnalyticsService(db)
    return await service.get_orders_by_month(
        start_date, end_date, compare, compare_start_date, compare_end_date
    )

@router.get("/category-sales", response_model=CategorySalesResponse)
async def category_sales(
    status_filter: str = Query("all", pattern="^(pending|confirmed|all)$"),
    limit: int = Query(10, ge=1, le=50),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user = Depends(analytics_viewer),
    db: Session = Depends(get_db)
):
    """Ventas por categoría (BIG DOG, HUESOS CARNOSOS, COMPLEMENTOS, PERRO, GATO)"""
    service = AnalyticsService(db)
    return await service.get_category_sales(status_filter, limit, start_date, end_date)

@router.get("/quantity-stats", response_model=QuantityStatsResponse)
async def quantity_stats(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user = Depends(analytics_viewer),
    db: Session = Depends(get_db)
):
    """Kilos por mes y producto, separados en minorista, envío en el día y mayorista"""
    service = AnalyticsService(db)
    return await service.get_quantity_stats(start_date, end_date)

@router.get("/delivery-types", response_model=DeliveryTypeStatsResponse)
async def delivery_type_stats(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    current_user = Depends(analytics_viewer),
    db: Session = Depends(get_db)
):
    service = AnalyticsService(db)
    return await service.get_delivery_type_stats(start_date, end_date)

@router.get("/summary", response_model=AnalyticsSummaryResponse)
async def summary(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    compare: bool = Query(False),
    compare_start_date: Optional[date] = Query(None),
    compare_end_date: Optional[date] = Query(None),
    current_user = Depends(analytics_viewer),
    db: Session = Depends(get_db)
):
    """
    Resumen del período con comparación opcional

    Con `compare=true` y sin fechas de comparación se usa el período
    anterior de igual duración. La variación es `null` si la base es 0.
    """
    service = AnalyticsService(db)
    return await service.get_summary(
        start_date, end_date, compare, compare_start_date, compare_end_date
    )
