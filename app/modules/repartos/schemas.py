from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date

from app.shared.schemas.common import BaseResponse, reject_null

# Lunes a sábado
DAY_KEYS = ("1", "2", "3", "4", "5", "6")
ROWS_PER_DAY = 3

class RepartoEntry(BaseModel):
    id: str
    text: str = ""
    is_completed: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

class RepartoEntryUpdate(BaseModel):
    text: Optional[str] = None
    is_completed: Optional[bool] = None

    not_null = reject_null('text', 'is_completed')

class WeekSaveRequest(BaseModel):
    data: Dict[str, List[RepartoEntry]]

class WeekResponse(BaseResponse):
    week_key: str
    data: Dict[str, List[RepartoEntry]]

class RepartosDataResponse(BaseResponse):
    weeks: Dict[str, Dict[str, List[RepartoEntry]]]
    total: int

class RepartosStats(BaseModel):
    total_weeks: int
    total_entries: int
    completed_entries: int
    completion_rate: float

class RepartosStatsResponse(BaseResponse):
    stats: RepartosStats

class WeekInfo(BaseModel):
    week_key: str
    start_date: date
    end_date: date

class WeeksOfMonthResponse(BaseResponse):
    month: int
    year: int
    weeks: List[WeekInfo]

class CleanupResponse(BaseResponse):
    deleted_count: int

class RepartosFilter(BaseModel):
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = Field(None, ge=2000)
    status: str = Field("all", pattern="^(all|completed|pending)$")
