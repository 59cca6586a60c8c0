from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.shared.schemas.common import BaseResponse

BEHAVIOR_CATEGORIES = ("new", "active", "possible-inactive", "lost", "recovered", "tracking")
SPENDING_CATEGORIES = ("premium", "standard", "basic")

class ClientProfile(BaseModel):
    """Cliente derivado de sus órdenes (agrupadas por email)"""
    email: str
    name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    last_address: Optional[Dict[str, Any]] = None
    behavior_category: str
    spending_category: str
    total_orders: int
    total_spent: float
    total_weight: float
    monthly_spending: float
    monthly_weight: float
    first_order_date: datetime
    last_order_date: datetime
    days_since_first_order: int
    days_since_last_order: int
    average_order_value: float
    is_hidden: bool = False
    whatsapp_contacted_at: Optional[datetime] = None

class CategoryStats(BaseModel):
    category: str
    count: int
    total_spent: float
    average_spending: float
    percentage: float

class ClientSummary(BaseModel):
    average_order_value: float
    repeat_customer_rate: float
    average_orders_per_customer: float
    average_monthly_spending: float

class ClientAnalyticsResponse(BaseResponse):
    total_clients: int
    behavior_categories: List[CategoryStats]
    spending_categories: List[CategoryStats]
    summary: ClientSummary
    clients: List[ClientProfile]
    total: int
    page_count: int

class ClientContact(BaseModel):
    email: str
    name: str

class ClientsByCategoryResponse(BaseResponse):
    category: str
    type: str
    clients: List[ClientContact]
    total: int

class ClientEmailsRequest(BaseModel):
    emails: List[str] = Field(..., min_length=1)

class ClientStatusInfo(BaseModel):
    email: str
    is_hidden: bool = False
    whatsapp_contacted_at: Optional[datetime] = None

class ClientStatusResponse(BaseResponse):
    statuses: List[ClientStatusInfo]
