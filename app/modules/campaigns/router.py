# app/modules/campaigns/router.py
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.config.database import get_db
from app.config.settings import settings
from app.core.auth.dependencies import require_permissions
from .service import CampaignService
from .cron import CampaignCronService
from .schemas import (
    EmailTemplateCreate, EmailTemplateUpdate, EmailTemplateDetailResponse, EmailTemplateListResponse,
    CampaignCreate, CampaignUpdate, CampaignDetailResponse, CampaignListResponse,
    ManualSendRequest, SendResultResponse, CronRunResponse
)

router = APIRouter()
cron_router = APIRouter()

# ===== TEMPLATES =====

@router.get("/templates", response_model=EmailTemplateListResponse)
async def list_templates(
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    """Templates propios y predeterminados"""
    service = CampaignService(db)
    return await service.list_templates(current_user)

@router.post("/templates", response_model=EmailTemplateDetailResponse, status_code=201)
async def create_template(
    data: EmailTemplateCreate,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.create_template(data, current_user)

@router.put("/templates/{template_id}", response_model=EmailTemplateDetailResponse)
async def update_template(
    template_id: int,
    data: EmailTemplateUpdate,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.update_template(template_id, data, current_user)

@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: int,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.delete_template(template_id, current_user)

@router.post("/send", response_model=SendResultResponse)
async def send_template(
    request: ManualSendRequest,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    """Enviar un template a una lista de clientes"""
    service = CampaignService(db)
    return await service.send_template(request.template_id, request.emails)

# ===== CAMPAÑAS =====

@router.get("/", response_model=CampaignListResponse)
async def list_campaigns(
    active_only: bool = Query(False),
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.list_campaigns(current_user, active_only)

@router.post("/", response_model=CampaignDetailResponse, status_code=201)
async def create_campaign(
    data: CampaignCreate,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.create_campaign(data, current_user)

@router.get("/{campaign_id}", response_model=CampaignDetailResponse)
async def get_campaign(
    campaign_id: int,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.get_campaign(campaign_id, current_user)

@router.put("/{campaign_id}", response_model=CampaignDetailResponse)
async def update_campaign(
    campaign_id: int,
    data: CampaignUpdate,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.update_campaign(campaign_id, data, current_user)

@router.delete("/{campaign_id}")
async def delete_campaign(
    campaign_id: int,
    current_user = Depends(require_permissions(["clients:send_email"])),
    db: Session = Depends(get_db)
):
    service = CampaignService(db)
    return await service.delete_campaign(campaign_id, current_user)

# ===== CRON =====

@cron_router.get("/run", response_model=CronRunResponse)
async def run_cron(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    """
    Job periódico

    Envía las campañas vencidas y después ejecuta el rollover de stock.
    Si hay CRON_SECRET configurado se exige `Authorization: Bearer <secret>`.
    """
    if settings.cron_secret and authorization != f"Bearer {settings.cron_secret}":
        raise HTTPException(status_code=401, detail="No autorizado")
    service = CampaignCronService(db)
    return service.run()
