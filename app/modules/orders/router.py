# app/modules/orders/router.py
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions
from .service import OrderService
from .schemas import (
    OrderCreate, OrderUpdate, OrderDetailResponse, OrderListResponse,
    OrderListParams, EstadoEnvioUpdate, WhatsAppContactRequest, MayoristaOrderCreate,
    MayoristaPersonaSearchResponse
)

router = APIRouter()

def list_params(
    page_index: int = Query(0, ge=0),
    page_size: int = Query(50, ge=1, le=500),
    search: Optional[str] = Query(None, description="Palabras a buscar (acepta términos en español)"),
    sort_by: str = Query("created_at"),
    sort_desc: bool = Query(True),
    date_from: Optional[date] = Query(None, description="Día de entrega desde (inclusive)"),
    date_to: Optional[date] = Query(None, description="Día de entrega hasta (inclusive)"),
    order_type: str = Query("all", pattern="^(all|mayorista|minorista)$")
) -> OrderListParams:
    return OrderListParams(
        page_index=page_index,
        page_size=page_size,
        search=search,
        sort_by=sort_by,
        sort_desc=sort_desc,
        date_from=date_from,
        date_to=date_to,
        order_type=order_type
    )

# ===== LISTADO Y EXPORTACIÓN =====

@router.get("/", response_model=OrderListResponse)
async def list_orders(
    params: OrderListParams = Depends(list_params),
    current_user = Depends(require_permissions(["table:view"])),
    db: Session = Depends(get_db)
):
    """
    Listado paginado de órdenes (sin pedidos express)

    **Búsqueda:** cada palabra debe coincidir con cliente, productos,
    dirección, medio de pago, estado, notas, tipo o total. Acepta
    `pendiente`, `confirmado`, `entregado`, `cancelado`, `efectivo`,
    `transferencia` y `mercado pago`.
    """
    service = OrderService(db)
    return await service.list_orders(params)

@router.get("/export")
async def export_orders(
    params: OrderListParams = Depends(list_params),
    current_user = Depends(require_permissions(["table:view"])),
    db: Session = Depends(get_db)
):
    """Exportar a CSV las órdenes del filtro actual"""
    service = OrderService(db)
    content = await service.export_csv(params)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=ordenes.csv"}
    )

# ===== WHATSAPP =====

@router.post("/whatsapp/mark")
async def mark_whatsapp_contacted(
    request: WhatsAppContactRequest,
    current_user = Depends(require_permissions(["clients:send_whatsapp"])),
    db: Session = Depends(get_db)
):
    """Marcar como contactadas por WhatsApp las órdenes de estos compradores"""
    service = OrderService(db)
    return await service.set_whatsapp_contacted(request.emails, True)

@router.post("/whatsapp/unmark")
async def unmark_whatsapp_contacted(
    request: WhatsAppContactRequest,
    current_user = Depends(require_permissions(["clients:send_whatsapp"])),
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    return await service.set_whatsapp_contacted(request.emails, False)

# ===== MAYORISTAS =====

@router.post("/mayorista", response_model=OrderDetailResponse, status_code=201)
async def create_mayorista_order(
    order_data: MayoristaOrderCreate,
    current_user = Depends(require_permissions(["table:edit"])),
    db: Session = Depends(get_db)
):
    """Crear orden mayorista; sin total se calcula con los precios mayoristas"""
    service = OrderService(db)
    return await service.create_mayorista_order(order_data)

@router.get("/mayoristas/search", response_model=MayoristaPersonaSearchResponse)
async def search_mayorista_personas(
    q: Optional[str] = Query(None, description="Mínimo 2 caracteres"),
    current_user = Depends(require_permissions(["table:view"])),
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    return await service.search_mayorista_personas(q)

# ===== CRUD =====

@router.post("/", response_model=OrderDetailResponse, status_code=201)
async def create_order(
    order_data: OrderCreate,
    current_user = Depends(require_permissions(["table:edit"])),
    db: Session = Depends(get_db)
):
    """Crear orden; si no se envía total se calcula como subtotal + envío"""
    service = OrderService(db)
    return await service.create_order(order_data)

@router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(
    order_id: int,
    current_user = Depends(require_permissions(["table:view"])),
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    return await service.get_order(order_id)

@router.put("/{order_id}", response_model=OrderDetailResponse)
async def update_order(
    order_id: int,
    order_data: OrderUpdate,
    current_user = Depends(require_permissions(["table:edit"])),
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    return await service.update_order(order_id, order_data)

@router.patch("/{order_id}/estado-envio", response_model=OrderDetailResponse)
async def update_estado_envio(
    order_id: int,
    data: EstadoEnvioUpdate,
    current_user = Depends(require_permissions(["express:edit"])),
    db: Session = Depends(get_db)
):
    """Actualizar solo el estado de envío (pendiente, pidiendo, en-viaje, listo)"""
    service = OrderService(db)
    return await service.update_estado_envio(order_id, data)

@router.delete("/{order_id}")
async def delete_order(
    order_id: int,
    current_user = Depends(require_permissions(["table:delete"])),
    db: Session = Depends(get_db)
):
    service = OrderService(db)
    return await service.delete_order(order_id)
