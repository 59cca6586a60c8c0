from pydantic import BaseModel, Field, validator
from typing import Any, Dict, List, Optional
from datetime import date, datetime

from app.shared.schemas.common import BaseResponse, reject_null
from app.shared.utils.dates import parse_date

ORDER_STATUSES = ("pending", "confirmed", "delivered", "cancelled")
ESTADOS_ENVIO = ("pendiente", "pidiendo", "en-viaje", "listo")
ORDER_TYPES = ("minorista", "mayorista")

# ===== DOCUMENTOS EMBEBIDOS =====

class OrderItemOption(BaseModel):
    name: str = ""
    price: float = 0
    quantity: float = 1

    class Config:
        extra = "allow"

class OrderItem(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: Optional[float] = None
    options: List[OrderItemOption] = []

    class Config:
        extra = "allow"

class OrderBuyer(BaseModel):
    name: str = ""
    lastName: str = ""
    email: str = ""
    phone: Optional[str] = None

    class Config:
        extra = "allow"

    @validator('email')
    def normalize_email(cls, v):
        return (v or "").strip().lower()

class OrderAddress(BaseModel):
    address: str = ""
    city: str = ""
    phone: str = ""
    reference: Optional[str] = None

    class Config:
        extra = "allow"

class OrderDeliveryArea(BaseModel):
    description: Optional[str] = None
    schedule: Optional[str] = None
    sameDayDelivery: bool = False

    class Config:
        extra = "allow"

# ===== REQUESTS =====

class OrderCreate(BaseModel):
    """Schema para crear una orden"""
    status: str = Field("pending", description="pending|confirmed|delivered|cancelled")
    total: Optional[float] = Field(None, ge=0)
    sub_total: float = Field(0, ge=0)
    shipping_price: float = Field(0, ge=0)
    notes: str = ""
    notes_own: str = ""
    address: OrderAddress = OrderAddress()
    buyer: OrderBuyer
    items: List[OrderItem] = Field(..., min_length=1)
    payment_method: Optional[str] = None
    coupon: Optional[Dict[str, Any]] = None
    delivery_area: Optional[OrderDeliveryArea] = None
    order_type: str = "minorista"
    delivery_day: Optional[date] = None
    punto_envio: Optional[str] = None
    estado_envio: Optional[str] = None

    @validator('status')
    def validate_status(cls, v):
        if v not in ORDER_STATUSES:
            raise ValueError(f"Estado inválido: {v}")
        return v

    @validator('order_type')
    def validate_order_type(cls, v):
        if v not in ORDER_TYPES:
            raise ValueError(f"Tipo de orden inválido: {v}")
        return v

    @validator('estado_envio')
    def validate_estado_envio(cls, v):
        if v is not None and v not in ESTADOS_ENVIO:
            raise ValueError(f"Estado de envío inválido: {v}")
        return v

    @validator('delivery_day', pre=True)
    def normalize_delivery_day(cls, v):
        return parse_date(v)

class OrderUpdate(BaseModel):
    """Actualización parcial de una orden"""
    status: Optional[str] = None
    total: Optional[float] = Field(None, ge=0)
    sub_total: Optional[float] = Field(None, ge=0)
    shipping_price: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    notes_own: Optional[str] = None
    address: Optional[OrderAddress] = None
    buyer: Optional[OrderBuyer] = None
    items: Optional[List[OrderItem]] = None
    payment_method: Optional[str] = None
    coupon: Optional[Dict[str, Any]] = None
    delivery_area: Optional[OrderDeliveryArea] = None
    order_type: Optional[str] = None
    delivery_day: Optional[date] = None
    punto_envio: Optional[str] = None
    estado_envio: Optional[str] = None

    not_null = reject_null('status', 'total', 'sub_total', 'shipping_price', 'address', 'buyer', 'items')

    @validator('status')
    def validate_status(cls, v):
        if v is not None and v not in ORDER_STATUSES:
            raise ValueError(f"Estado inválido: {v}")
        return v

    @validator('order_type')
    def validate_order_type(cls, v):
        if v is not None and v not in ORDER_TYPES:
            raise ValueError(f"Tipo de orden inválido: {v}")
        return v

    @validator('estado_envio')
    def validate_estado_envio(cls, v):
        if v is not None and v not in ESTADOS_ENVIO:
            raise ValueError(f"Estado de envío inválido: {v}")
        return v

    @validator('delivery_day', pre=True)
    def normalize_delivery_day(cls, v):
        return parse_date(v)

class MayoristaOrderCreate(BaseModel):
    """
    Orden de un punto de venta mayorista.

    Sin total se calcula con la lista de precios MAYORISTA vigente el día
    de entrega. Los datos del comprador quedan guardados para autocompletar.
    """
    punto_de_venta_id: Optional[int] = None
    status: str = Field("pending", description="pending|confirmed|delivered|cancelled")
    total: Optional[float] = Field(None, ge=0)
    shipping_price: float = Field(0, ge=0)
    notes: str = ""
    notes_own: str = ""
    address: OrderAddress = OrderAddress()
    buyer: OrderBuyer
    items: List[OrderItem] = Field(..., min_length=1)
    payment_method: str = "cash"
    delivery_area: Optional[OrderDeliveryArea] = None
    delivery_day: date

    @validator('status')
    def validate_status(cls, v):
        if v not in ORDER_STATUSES:
            raise ValueError(f"Estado inválido: {v}")
        return v

    @validator('delivery_day', pre=True)
    def normalize_delivery_day(cls, v):
        return parse_date(v)

class EstadoEnvioUpdate(BaseModel):
    estado_envio: str

    @validator('estado_envio')
    def validate_estado_envio(cls, v):
        if v not in ESTADOS_ENVIO:
            raise ValueError(f"Estado de envío inválido: {v}")
        return v

class WhatsAppContactRequest(BaseModel):
    """Emails de compradores a marcar/desmarcar"""
    emails: List[str] = Field(..., min_length=1)

class OrderListParams(BaseModel):
    page_index: int = Field(0, ge=0)
    page_size: int = Field(50, ge=1, le=500)
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_desc: bool = True
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    order_type: str = Field("all", pattern="^(all|mayorista|minorista)$")

# ===== RESPONSES =====

class OrderResponse(BaseModel):
    id: int
    status: str
    total: float
    sub_total: float
    shipping_price: float
    notes: Optional[str] = ""
    notes_own: Optional[str] = ""
    address: Dict[str, Any] = {}
    buyer: Dict[str, Any] = {}
    items: List[Dict[str, Any]] = []
    payment_method: Optional[str] = None
    coupon: Optional[Dict[str, Any]] = None
    delivery_area: Optional[Dict[str, Any]] = None
    order_type: Optional[str] = None
    delivery_day: Optional[date] = None
    punto_envio: Optional[str] = None
    estado_envio: Optional[str] = None
    punto_de_venta_id: Optional[int] = None
    whatsapp_contacted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class OrderDetailResponse(BaseResponse):
    order: OrderResponse

class OrderListResponse(BaseResponse):
    orders: List[OrderResponse]
    total: int
    page_count: int

class MayoristaPersonaResponse(BaseModel):
    id: int
    name: str
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Dict[str, Any] = {}

    class Config:
        from_attributes = True

class MayoristaPersonaSearchResponse(BaseResponse):
    personas: List[MayoristaPersonaResponse]
