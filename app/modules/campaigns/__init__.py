# app/modules/campaigns/__init__.py

"""
Módulo Campaigns - Emails a clientes

- Templates de email propios y predeterminados
- Campañas programadas con expresión cron por segmento de clientes
- Envío manual de templates
- Job periódico (campañas vencidas + rollover de stock)
"""

from .router import router as campaigns_router, cron_router
from .service import CampaignService
from .cron import CampaignCronService

__all__ = [
    "campaigns_router",
    "cron_router",
    "CampaignService",
    "CampaignCronService"
]
