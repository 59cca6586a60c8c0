from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime

from croniter import croniter

from app.shared.schemas.common import BaseResponse, reject_null
from app.modules.clients.schemas import BEHAVIOR_CATEGORIES, SPENDING_CATEGORIES

CAMPAIGN_STATUSES = ("ACTIVE", "PAUSED", "COMPLETED")
TARGET_TYPES = ("behavior", "spending")

def _validate_cron(v):
    v = " ".join(v.split())
    if len(v.split(" ")) != 5 or not croniter.is_valid(v):
        raise ValueError(f'Expresión cron inválida: {v}')
    return v

# ===== TEMPLATES =====

class EmailTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_default: bool = False

class EmailTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    subject: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None

    not_null = reject_null('name', 'subject', 'content')

class EmailTemplateResponse(BaseModel):
    id: int
    name: str
    subject: str
    content: str
    description: Optional[str] = None
    is_default: bool
    created_by_user_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class EmailTemplateDetailResponse(BaseResponse):
    template: EmailTemplateResponse

class EmailTemplateListResponse(BaseResponse):
    templates: List[EmailTemplateResponse]
    total: int

# ===== CAMPAÑAS =====

class TargetAudience(BaseModel):
    type: str = Field(..., pattern="^(behavior|spending)$")
    category: str

    @validator('category')
    def validate_category(cls, v, values):
        categories = BEHAVIOR_CATEGORIES if values.get('type') == "behavior" else SPENDING_CATEGORIES
        if v not in categories:
            raise ValueError(f'Categoría inválida: {v}')
        return v

class CampaignCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    schedule_cron: str = Field(..., description="Expresión cron de 5 campos")
    target_audience: TargetAudience
    email_template_id: int
    status: str = Field("ACTIVE", pattern="^(ACTIVE|PAUSED|COMPLETED)$")

    @validator('schedule_cron')
    def validate_schedule_cron(cls, v):
        return _validate_cron(v)

class CampaignUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    schedule_cron: Optional[str] = None
    target_audience: Optional[TargetAudience] = None
    email_template_id: Optional[int] = None
    status: Optional[str] = Field(None, pattern="^(ACTIVE|PAUSED|COMPLETED)$")

    @validator('schedule_cron')
    def validate_schedule_cron(cls, v):
        return _validate_cron(v) if v is not None else v

    not_null = reject_null('name', 'schedule_cron', 'target_audience', 'email_template_id', 'status')

class CampaignResponse(BaseModel):
    id: int
    name: str
    schedule_cron: str
    target_audience: TargetAudience
    status: str
    email_template_id: Optional[int] = None
    user_id: Optional[int] = None
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

class CampaignDetailResponse(BaseResponse):
    campaign: CampaignResponse

class CampaignListResponse(BaseResponse):
    campaigns: List[CampaignResponse]
    total: int

# ===== ENVÍOS =====

class ManualSendRequest(BaseModel):
    template_id: int
    emails: List[str] = Field(..., min_length=1)

class SendResultResponse(BaseResponse):
    emails_sent: int

class CronRunResponse(BaseResponse):
    campaigns_checked: int
    campaigns_due: int
    emails_sent: int
    stock_rollover: Optional[str] = None
