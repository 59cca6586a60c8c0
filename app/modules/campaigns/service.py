from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.shared.database.models import EmailTemplate, ScheduledEmailCampaign, User
from app.shared.services.email_service import EmailService
from app.shared.utils.dates import now_local
from app.modules.clients.service import ClientService
from .repository import CampaignRepository
from .scheduling import next_run_utc
from .schemas import (
    EmailTemplateCreate, EmailTemplateUpdate, EmailTemplateResponse,
    EmailTemplateDetailResponse, EmailTemplateListResponse,
    CampaignCreate, CampaignUpdate, CampaignResponse, CampaignDetailResponse,
    CampaignListResponse, TargetAudience, SendResultResponse
)

logger = logging.getLogger(__name__)


def campaign_to_response(campaign: ScheduledEmailCampaign) -> CampaignResponse:
    return CampaignResponse(
        id=campaign.id,
        name=campaign.name,
        schedule_cron=campaign.schedule_cron,
        target_audience=TargetAudience.model_construct(
            type=campaign.target_type, category=campaign.target_category
        ),
        status=campaign.status,
        email_template_id=campaign.email_template_id,
        user_id=campaign.user_id,
        last_run=campaign.last_run,
        next_run=campaign.next_run,
        created_at=campaign.created_at,
        updated_at=campaign.updated_at
    )


def _campaign_values(data: dict) -> dict:
    """La audiencia se guarda en dos columnas"""
    audience = data.pop("target_audience", None)
    if audience is not None:
        data["target_type"] = audience["type"]
        data["target_category"] = audience["category"]
    return data


class CampaignService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = CampaignRepository(db)

    # ===== TEMPLATES =====

    def _get_template_or_404(self, template_id: int) -> EmailTemplate:
        template = self.repository.get_template(template_id)
        if not template:
            raise HTTPException(status_code=404, detail="Template no encontrado")
        return template

    async def list_templates(self, current_user: User) -> EmailTemplateListResponse:
        templates = self.repository.get_templates_for_user(current_user.id)
        return EmailTemplateListResponse(
            success=True,
            message=f"{len(templates)} templates",
            templates=[EmailTemplateResponse.model_validate(t) for t in templates],
            total=len(templates)
        )

    async def create_template(self, data: EmailTemplateCreate, current_user: User) -> EmailTemplateDetailResponse:
        values = data.model_dump()
        values["created_by_user_id"] = current_user.id
        template = self.repository.create_template(values)
        logger.info(f"Template '{template.name}' creado por {current_user.email}")
        return EmailTemplateDetailResponse(
            success=True, message="Template creado", template=EmailTemplateResponse.model_validate(template)
        )

    async def update_template(
        self, template_id: int, data: EmailTemplateUpdate, current_user: User
    ) -> EmailTemplateDetailResponse:
        template = self._get_template_or_404(template_id)
        is_owner = template.created_by_user_id == current_user.id
        if not (is_owner or template.is_default or current_user.is_admin):
            raise HTTPException(status_code=403, detail="Solo el creador puede editar este template")

        template = self.repository.update_template(template, data.model_dump(exclude_unset=True))
        return EmailTemplateDetailResponse(
            success=True, message="Template actualizado", template=EmailTemplateResponse.model_validate(template)
        )

    async def delete_template(self, template_id: int, current_user: User) -> dict:
        template = self._get_template_or_404(template_id)
        if template.created_by_user_id != current_user.id:
            raise HTTPException(status_code=403, detail="Solo el creador puede eliminar este template")
        self.repository.delete_template(template)
        return {"success": True, "message": "Template eliminado"}

    # ===== CAMPAÑAS =====

    def _get_campaign_or_404(self, campaign_id: int, current_user: User) -> ScheduledEmailCampaign:
        campaign = self.repository.get_campaign(campaign_id)
        if not campaign or (campaign.user_id != current_user.id and not current_user.is_admin):
            raise HTTPException(status_code=404, detail="Campaña no encontrada")
        return campaign

    async def list_campaigns(self, current_user: User, active_only: bool = False) -> CampaignListResponse:
        if active_only:
            campaigns = self.repository.get_active_campaigns()
        else:
            campaigns = self.repository.get_campaigns()
        # cada usuario ve solo sus campañas, el admin ve todas
        if not current_user.is_admin:
            campaigns = [c for c in campaigns if c.user_id == current_user.id]
        return CampaignListResponse(
            success=True,
            message=f"{len(campaigns)} campañas",
            campaigns=[campaign_to_response(c) for c in campaigns],
            total=len(campaigns)
        )

    async def get_campaign(self, campaign_id: int, current_user: User) -> CampaignDetailResponse:
        campaign = self._get_campaign_or_404(campaign_id, current_user)
        return CampaignDetailResponse(success=True, message="Campaña encontrada", campaign=campaign_to_response(campaign))

    async def create_campaign(self, data: CampaignCreate, current_user: User) -> CampaignDetailResponse:
        self._get_template_or_404(data.email_template_id)
        values = _campaign_values(data.model_dump())
        values["user_id"] = current_user.id
        values["next_run"] = next_run_utc(data.schedule_cron, now_local())
        campaign = self.repository.create_campaign(values)
        logger.info(f"Campaña '{campaign.name}' creada ({campaign.schedule_cron})")
        return CampaignDetailResponse(success=True, message="Campaña creada", campaign=campaign_to_response(campaign))

    async def update_campaign(
        self, campaign_id: int, data: CampaignUpdate, current_user: User
    ) -> CampaignDetailResponse:
        campaign = self._get_campaign_or_404(campaign_id, current_user)
        values = _campaign_values(data.model_dump(exclude_unset=True))
        if values.get("email_template_id") is not None:
            self._get_template_or_404(values["email_template_id"])
        if "schedule_cron" in values:
            values["next_run"] = next_run_utc(values["schedule_cron"], now_local())

        campaign = self.repository.update_campaign(campaign, values)
        return CampaignDetailResponse(success=True, message="Campaña actualizada", campaign=campaign_to_response(campaign))

    async def delete_campaign(self, campaign_id: int, current_user: User) -> dict:
        campaign = self._get_campaign_or_404(campaign_id, current_user)
        self.repository.delete_campaign(campaign)
        return {"success": True, "message": "Campaña eliminada"}

    # ===== ENVÍO MANUAL =====

    async def send_template(
        self, template_id: int, emails: List[str], email_service: Optional[EmailService] = None
    ) -> SendResultResponse:
        """Envía un template a una lista de clientes"""
        email_service = email_service or EmailService()
        if not email_service.configured:
            raise HTTPException(status_code=500, detail="Servicio de email no configurado")

        template = self._get_template_or_404(template_id)
        names = {
            p["email"]: f"{p['name']} {p['last_name']}".strip()
            for p in ClientService(self.db).get_profiles(include_hidden=True)
        }

        recipients = []
        for email in emails:
            email = email.strip().lower()
            if email and email not in recipients:
                recipients.append(email)

        payloads = [
            email_service.build_payload(email, template.subject, names.get(email), template.content)
            for email in recipients
        ]
        try:
            sent = email_service.send_batch(payloads)
        except Exception as e:
            logger.error(f"Error enviando template {template_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error enviando emails: {str(e)}")

        logger.info(f"Template '{template.name}' enviado a {sent} clientes")
        return SendResultResponse(success=True, message=f"{sent} emails enviados", emails_sent=sent)
