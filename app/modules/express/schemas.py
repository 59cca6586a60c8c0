from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import date, datetime

from app.shared.schemas.common import BaseResponse, reject_null
from app.shared.utils.dates import parse_date, format_day
from app.modules.orders.schemas import OrderResponse

CUTOFF_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

# ===== PUNTOS DE ENVÍO =====

class PuntoEnvioCreate(BaseModel):
    nombre: str = Field(..., min_length=1, max_length=255)
    cutoff_time: Optional[str] = Field(None, pattern=CUTOFF_TIME_PATTERN, description="Hora de corte HH:MM")

    @validator('nombre')
    def validate_nombre(cls, v):
        if not v.strip():
            raise ValueError('El nombre no puede estar vacío')
        return v.strip()

class PuntoEnvioUpdate(BaseModel):
    nombre: Optional[str] = Field(None, min_length=1, max_length=255)
    cutoff_time: Optional[str] = Field(None, pattern=CUTOFF_TIME_PATTERN)

    not_null = reject_null('nombre')

    @validator('nombre')
    def validate_nombre(cls, v):
        if v is not None and not v.strip():
            raise ValueError('El nombre no puede estar vacío')
        return v.strip() if v else v

class PuntoEnvioResponse(BaseModel):
    id: int
    nombre: str
    cutoff_time: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class PuntoEnvioDetailResponse(BaseResponse):
    punto_envio: PuntoEnvioResponse

class PuntoEnvioListResponse(BaseResponse):
    puntos_envio: List[PuntoEnvioResponse]
    total: int

# ===== STOCK =====

class StockCreate(BaseModel):
    """Stock de un producto para un día; stock_final se calcula si no viene"""
    punto_envio: str = Field(..., min_length=1)
    section: Optional[str] = None
    producto: str = Field(..., min_length=1)
    peso: Optional[str] = None
    stock_inicial: float = Field(0, ge=0)
    llevamos: float = Field(0, ge=0)
    pedidos_del_dia: float = Field(0, ge=0)
    stock_final: Optional[float] = None
    fecha: str

    @validator('fecha', pre=True)
    def normalize_fecha(cls, v):
        parsed = parse_date(v)
        if parsed is None:
            raise ValueError('La fecha es requerida')
        return format_day(parsed)

class StockUpdate(BaseModel):
    section: Optional[str] = None
    producto: Optional[str] = Field(None, min_length=1)
    peso: Optional[str] = None
    stock_inicial: Optional[float] = Field(None, ge=0)
    llevamos: Optional[float] = Field(None, ge=0)
    pedidos_del_dia: Optional[float] = Field(None, ge=0)
    stock_final: Optional[float] = None

    not_null = reject_null('producto', 'stock_inicial', 'llevamos', 'pedidos_del_dia', 'stock_final')

class StockResponse(BaseModel):
    id: int
    punto_envio: str
    section: Optional[str] = None
    producto: str
    peso: Optional[str] = None
    stock_inicial: float
    llevamos: float
    pedidos_del_dia: float
    stock_final: float
    fecha: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class StockDetailResponse(BaseResponse):
    stock: StockResponse

class StockListResponse(BaseResponse):
    stock: List[StockResponse]
    total: int

# ===== PRIORIDAD DE PEDIDOS =====

class OrderPriorityRequest(BaseModel):
    fecha: str
    punto_envio: str = Field(..., min_length=1)
    order_ids: List[int] = []

    @validator('fecha', pre=True)
    def normalize_fecha(cls, v):
        parsed = parse_date(v)
        if parsed is None:
            raise ValueError('La fecha es requerida')
        return format_day(parsed)

class OrderPriorityResponse(BaseResponse):
    fecha: str
    punto_envio: str
    order_ids: List[int]

# ===== PEDIDOS EXPRESS =====

class ExpressOrdersResponse(BaseResponse):
    orders: List[OrderResponse]
    total: int

class OrderCountResponse(BaseResponse):
    punto_envio: str
    fecha: date
    count: int

class StockRolloverResponse(BaseResponse):
    today: str
    next_day: str
    puntos_procesados: List[str]
    stock_creado: int
