# app/modules/prices/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions
from .service import PriceService
from .schemas import (
    SECTION_PATTERN, PRICE_TYPE_PATTERN,
    PriceCreate, PriceUpdate, PriceFilters, PeriodRequest,
    PriceDetailResponse, PriceListResponse, PriceStatsResponse, InitializePeriodResponse,
    ProductoGestorCreate, ProductoGestorUpdate,
    ProductoGestorDetailResponse, ProductoGestorListResponse,
    PriceCalculationRequest, PriceCalculationResponse, OrderTotalRequest, OrderTotalResponse
)

router = APIRouter()

# ===== CONSULTAS =====

@router.get("/", response_model=PriceListResponse)
async def list_prices(
    section: Optional[str] = Query(None, pattern=SECTION_PATTERN),
    product: Optional[str] = Query(None),
    weight: Optional[str] = Query(None),
    price_type: Optional[str] = Query(None, pattern=PRICE_TYPE_PATTERN),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
    current_user = Depends(require_permissions(["prices:view"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    filters = PriceFilters(
        section=section, product=product, weight=weight, price_type=price_type,
        month=month, year=year, is_active=is_active
    )
    return await service.list_prices(filters)

@router.get("/current", response_model=PriceListResponse)
async def current_prices(
    current_user = Depends(require_permissions(["prices:view"])),
    db: Session = Depends(get_db)
):
    """Último precio activo vigente de cada producto y tipo de precio"""
    service = PriceService(db)
    return await service.get_current_prices()

@router.get("/history", response_model=PriceListResponse)
async def price_history(
    section: str = Query(..., pattern=SECTION_PATTERN),
    product: str = Query(..., min_length=1),
    price_type: str = Query(..., pattern=PRICE_TYPE_PATTERN),
    weight: Optional[str] = Query(None),
    current_user = Depends(require_permissions(["prices:view"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.get_price_history(section, product, weight, price_type)

@router.get("/stats", response_model=PriceStatsResponse)
async def price_stats(
    current_user = Depends(require_permissions(["prices:view"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.get_price_stats()

@router.get("/by-month", response_model=PriceListResponse)
async def prices_by_month(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000),
    current_user = Depends(require_permissions(["prices:view"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.get_prices_by_month(month, year)

@router.post("/initialize-period", response_model=InitializePeriodResponse)
async def initialize_period(
    request: PeriodRequest,
    current_user = Depends(require_permissions(["prices:edit"])),
    db: Session = Depends(get_db)
):
    """Copiar los últimos precios del catálogo al primer día del período"""
    service = PriceService(db)
    return await service.initialize_period(request.month, request.year)

# ===== CÁLCULO =====

@router.post("/calculate", response_model=PriceCalculationResponse)
async def calculate_price(
    request: PriceCalculationRequest,
    current_user = Depends(require_permissions(["table:edit"])),
    db: Session = Depends(get_db)
):
    """
    Precio de un producto "SECCION - PRODUCTO - PESO" para el tipo de
    cliente y medio de pago (mayorista, efectivo o transferencia)
    """
    service = PriceService(db)
    return await service.calculate_price(request)

@router.post("/calculate-order", response_model=OrderTotalResponse)
async def calculate_order_total(
    request: OrderTotalRequest,
    current_user = Depends(require_permissions(["table:edit"])),
    db: Session = Depends(get_db)
):
    """Total de una orden con los precios vigentes al día de entrega"""
    service = PriceService(db)
    return await service.calculate_order_total(request)

# ===== PRODUCTOS GESTOR =====

@router.get("/productos", response_model=ProductoGestorListResponse)
async def list_productos(
    current_user = Depends(require_permissions(["prices:view"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.list_productos()

@router.post("/productos", response_model=ProductoGestorDetailResponse, status_code=201)
async def create_producto(
    data: ProductoGestorCreate,
    current_user = Depends(require_permissions(["prices:edit"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.create_producto(data)

@router.put("/productos/{producto_id}", response_model=ProductoGestorDetailResponse)
async def update_producto(
    producto_id: int,
    data: ProductoGestorUpdate,
    current_user = Depends(require_permissions(["prices:edit"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.update_producto(producto_id, data)

@router.delete("/productos/{producto_id}")
async def delete_producto(
    producto_id: int,
    current_user = Depends(require_permissions(["prices:edit"])),
    db: Session = Depends(get_db)
):
    """Eliminar un producto del catálogo y todos sus precios"""
    service = PriceService(db)
    return await service.delete_producto(producto_id)

# ===== PRECIOS =====

@router.post("/", response_model=PriceDetailResponse, status_code=201)
async def create_price(
    data: PriceCreate,
    current_user = Depends(require_permissions(["prices:edit"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.create_price(data)

@router.put("/{price_id}", response_model=PriceDetailResponse)
async def update_price(
    price_id: int,
    data: PriceUpdate,
    current_user = Depends(require_permissions(["prices:edit"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.update_price(price_id, data)

@router.delete("/{price_id}")
async def delete_price(
    price_id: int,
    current_user = Depends(require_permissions(["prices:edit"])),
    db: Session = Depends(get_db)
):
    service = PriceService(db)
    return await service.delete_price(price_id)
