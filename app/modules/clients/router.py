# app/modules/clients/router.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.config.database import get_db
from app.core.auth.dependencies import require_permissions
from .service import ClientService
from .schemas import (
    ClientAnalyticsResponse, ClientsByCategoryResponse, ClientEmailsRequest, ClientStatusResponse
)

router = APIRouter()

@router.get("/analytics", response_model=ClientAnalyticsResponse)
async def client_analytics(
    behavior_category: Optional[str] = Query(None),
    spending_category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    include_hidden: bool = Query(False),
    page_index: int = Query(0, ge=0),
    page_size: int = Query(50, ge=1, le=500),
    current_user = Depends(require_permissions(["clients:view_analytics"])),
    db: Session = Depends(get_db)
):
    """
    Analíticas y segmentación de clientes

    Los clientes se arman a partir de las órdenes no canceladas agrupadas
    por email. Los ocultos no se incluyen salvo `include_hidden=true`.
    """
    service = ClientService(db)
    return await service.get_analytics(
        behavior_category, spending_category, search, include_hidden, page_index, page_size
    )

@router.get("/by-category", response_model=ClientsByCategoryResponse)
async def clients_by_category(
    category: str = Query(...),
    type: str = Query(..., pattern="^(behavior|spending)$"),
    current_user = Depends(require_permissions(["clients:view"])),
    db: Session = Depends(get_db)
):
    """Emails y nombres de los clientes de una categoría"""
    service = ClientService(db)
    return await service.clients_by_category(category, type)

# ===== VISIBILIDAD =====

@router.post("/hide")
async def hide_clients(
    request: ClientEmailsRequest,
    current_user = Depends(require_permissions(["clients:view"])),
    db: Session = Depends(get_db)
):
    service = ClientService(db)
    return await service.set_hidden(request.emails, True)

@router.post("/show")
async def show_clients(
    request: ClientEmailsRequest,
    current_user = Depends(require_permissions(["clients:view"])),
    db: Session = Depends(get_db)
):
    service = ClientService(db)
    return await service.set_hidden(request.emails, False)

@router.get("/status", response_model=ClientStatusResponse)
async def client_statuses(
    emails: Optional[List[str]] = Query(None),
    current_user = Depends(require_permissions(["clients:view"])),
    db: Session = Depends(get_db)
):
    """Visibilidad y contacto por WhatsApp por email"""
    service = ClientService(db)
    return await service.get_statuses(emails)

# ===== WHATSAPP =====

@router.post("/whatsapp/mark")
async def mark_whatsapp(
    request: ClientEmailsRequest,
    current_user = Depends(require_permissions(["clients:send_whatsapp"])),
    db: Session = Depends(get_db)
):
    service = ClientService(db)
    return await service.set_whatsapp_contacted(request.emails, True)

@router.post("/whatsapp/unmark")
async def unmark_whatsapp(
    request: ClientEmailsRequest,
    current_user = Depends(require_permissions(["clients:send_whatsapp"])),
    db: Session = Depends(get_db)
):
    service = ClientService(db)
    return await service.set_whatsapp_contacted(request.emails, False)
