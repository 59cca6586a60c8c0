# app/modules/campaigns/cron.py
from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
import logging

from app.config.settings import settings
from app.shared.services.email_service import EmailService
from app.shared.utils.dates import now_local, to_utc_naive
from app.modules.clients.service import ClientService
from app.modules.express.service import ExpressService
from .repository import CampaignRepository
from .scheduling import already_ran, due_fire_time, next_run_utc
from .schemas import CronRunResponse

logger = logging.getLogger(__name__)


class CampaignCronService:
    """Job periódico: campañas de email vencidas y rollover de stock"""

    def __init__(self, db: Session, email_service: Optional[EmailService] = None):
        self.db = db
        self.repository = CampaignRepository(db)
        self.email_service = email_service or EmailService()

    def run(self, now: Optional[datetime] = None) -> CronRunResponse:
        now = now or now_local()
        logger.info(f"🚀 Cron de campañas iniciado {now.isoformat()}")

        if not self.email_service.configured:
            logger.error("🚨 Servicio de email no configurado, falta RESEND_API_KEY")
            raise HTTPException(status_code=500, detail="Servicio de email no configurado")

        campaigns = self.repository.get_active_campaigns()
        logger.info(f"{len(campaigns)} campañas activas para revisar")

        client_service = ClientService(self.db)
        payloads: List[dict] = []
        sending = []
        due_count = 0

        for campaign in campaigns:
            try:
                fire_time = due_fire_time(campaign.schedule_cron, now, settings.cron_due_window_seconds)
                if fire_time is None:
                    logger.info(f"Campaña '{campaign.name}' no vence todavía")
                    continue
                if already_ran(campaign.last_run, fire_time, settings.cron_due_window_seconds):
                    logger.info(f"Campaña '{campaign.name}' ya enviada para el disparo {fire_time.isoformat()}")
                    continue
                due_count += 1

                template = campaign.email_template
                if not template:
                    logger.error(f"Campaña '{campaign.name}': template {campaign.email_template_id} no encontrado")
                    continue

                clients = client_service.get_clients_by_category(campaign.target_category, campaign.target_type)
                if not clients:
                    logger.info(f"Campaña '{campaign.name}': sin clientes en {campaign.target_type}/{campaign.target_category}")
                    continue

                payloads.extend(
                    self.email_service.build_payload(c.email, template.subject, c.name, template.content)
                    for c in clients
                )
                sending.append(campaign)
            except Exception as e:
                logger.error(f"Error procesando campaña '{campaign.name}': {str(e)}")

        sent = 0
        if payloads:
            logger.info(f"Enviando {len(payloads)} emails en batch")
            try:
                sent = self.email_service.send_batch(payloads)
            except Exception as e:
                logger.error(f"Error enviando el batch de emails: {str(e)}")
                sending = []
            for campaign in sending:
                self.repository.update_campaign(campaign, {
                    "last_run": to_utc_naive(now),
                    "next_run": next_run_utc(campaign.schedule_cron, now)
                }, commit=False)
            self.repository.commit()
        else:
            logger.info("No hay emails para enviar")

        rollover_message = None
        try:
            rollover = ExpressService(self.db).perform_stock_rollover(now)
            rollover_message = rollover.message
            logger.info("✅ Rollover de stock verificado")
        except Exception as e:
            self.db.rollback()
            rollover_message = f"Error en rollover de stock: {str(e)}"
            logger.error(f"❌ Rollover de stock falló: {str(e)}")

        logger.info("✅ Cron de campañas finalizado")
        return CronRunResponse(
            success=True,
            message="Cron ejecutado",
            campaigns_checked=len(campaigns),
            campaigns_due=due_count,
            emails_sent=sent,
            stock_rollover=rollover_message
        )
