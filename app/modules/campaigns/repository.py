from sqlalchemy.orm import Session
from sqlalchemy import or_, desc
from typing import List, Optional

from app.shared.database.models import EmailTemplate, ScheduledEmailCampaign

class CampaignRepository:
    def __init__(self, db: Session):
        self.db = db

    # ===== TEMPLATES =====

    def get_templates_for_user(self, user_id: int) -> List[EmailTemplate]:
        """Templates propios más los predeterminados; los predeterminados primero"""
        return self.db.query(EmailTemplate).filter(
            or_(EmailTemplate.created_by_user_id == user_id, EmailTemplate.is_default == True)
        ).order_by(desc(EmailTemplate.is_default), desc(EmailTemplate.created_at), desc(EmailTemplate.id)).all()

    def get_template(self, template_id: int) -> Optional[EmailTemplate]:
        return self.db.query(EmailTemplate).filter(EmailTemplate.id == template_id).first()

    def create_template(self, data: dict) -> EmailTemplate:
        template = EmailTemplate(**data)
        self.db.add(template)
        self.db.commit()
        self.db.refresh(template)
        return template

    def update_template(self, template: EmailTemplate, data: dict) -> EmailTemplate:
        for key, value in data.items():
            setattr(template, key, value)
        self.db.commit()
        self.db.refresh(template)
        return template

    def delete_template(self, template: EmailTemplate) -> None:
        self.db.delete(template)
        self.db.commit()

    # ===== CAMPAÑAS =====

    def get_campaigns(self, user_id: Optional[int] = None) -> List[ScheduledEmailCampaign]:
        query = self.db.query(ScheduledEmailCampaign)
        if user_id is not None:
            query = query.filter(ScheduledEmailCampaign.user_id == user_id)
        return query.order_by(desc(ScheduledEmailCampaign.created_at), desc(ScheduledEmailCampaign.id)).all()

    def get_active_campaigns(self) -> List[ScheduledEmailCampaign]:
        return self.db.query(ScheduledEmailCampaign).filter(
            ScheduledEmailCampaign.status == "ACTIVE"
        ).order_by(ScheduledEmailCampaign.id).all()

    def get_campaign(self, campaign_id: int) -> Optional[ScheduledEmailCampaign]:
        return self.db.query(ScheduledEmailCampaign).filter(ScheduledEmailCampaign.id == campaign_id).first()

    def create_campaign(self, data: dict) -> ScheduledEmailCampaign:
        campaign = ScheduledEmailCampaign(**data)
        self.db.add(campaign)
        self.db.commit()
        self.db.refresh(campaign)
        return campaign

    def update_campaign(self, campaign: ScheduledEmailCampaign, data: dict, commit: bool = True) -> ScheduledEmailCampaign:
        for key, value in data.items():
            setattr(campaign, key, value)
        if commit:
            self.db.commit()
            self.db.refresh(campaign)
        return campaign

    def delete_campaign(self, campaign: ScheduledEmailCampaign) -> None:
        self.db.delete(campaign)
        self.db.commit()

    def commit(self) -> None:
        self.db.commit()
