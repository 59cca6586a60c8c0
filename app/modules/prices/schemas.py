from pydantic import BaseModel, Field, validator
from typing import Dict, List, Optional
from datetime import date, datetime

from app.shared.schemas.common import BaseResponse, reject_null
from app.shared.utils.dates import parse_date

PRICE_SECTIONS = ("PERRO", "GATO", "OTROS", "RAW")
PRICE_TYPES = ("EFECTIVO", "TRANSFERENCIA", "MAYORISTA")

SECTION_PATTERN = "^(" + "|".join(PRICE_SECTIONS) + ")$"
PRICE_TYPE_PATTERN = "^(" + "|".join(PRICE_TYPES) + ")$"

def _clean_weight(v):
    if v is None:
        return None
    v = str(v).strip().upper()
    return v or None

def _validate_price_types(v):
    for price_type in v:
        if price_type not in PRICE_TYPES:
            raise ValueError(f'Tipo de precio inválido: {price_type}')
    return list(dict.fromkeys(v))

# ===== PRECIOS =====

class PriceCreate(BaseModel):
    section: str = Field(..., pattern=SECTION_PATTERN)
    product: str = Field(..., min_length=1, max_length=255)
    weight: Optional[str] = None
    price_type: str = Field(..., pattern=PRICE_TYPE_PATTERN)
    price: float = Field(..., ge=0)
    effective_date: Optional[date] = Field(None, description="Por defecto hoy")
    is_active: bool = True

    @validator('product')
    def normalize_product(cls, v):
        if not v.strip():
            raise ValueError('El producto no puede estar vacío')
        return v.strip().upper()

    @validator('weight', pre=True)
    def normalize_weight(cls, v):
        return _clean_weight(v)

    @validator('effective_date', pre=True)
    def parse_effective_date(cls, v):
        return parse_date(v)

class PriceUpdate(BaseModel):
    price: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None

    not_null = reject_null('price', 'is_active')

class PriceFilters(BaseModel):
    section: Optional[str] = None
    product: Optional[str] = None
    weight: Optional[str] = None
    price_type: Optional[str] = None
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = None
    is_active: Optional[bool] = None

class PeriodRequest(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000)

class PriceResponse(BaseModel):
    id: int
    section: str
    product: str
    weight: Optional[str] = None
    price_type: str
    price: float
    is_active: bool
    effective_date: date
    month: int
    year: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class PriceDetailResponse(BaseResponse):
    price: PriceResponse

class PriceListResponse(BaseResponse):
    prices: List[PriceResponse]
    total: int

class PriceStats(BaseModel):
    total_prices: int
    prices_by_section: Dict[str, int]
    prices_by_type: Dict[str, int]
    average_price_by_section: Dict[str, float]
    price_changes_this_month: int
    most_recent_changes: List[PriceResponse]

class PriceStatsResponse(BaseResponse):
    stats: PriceStats

class InitializePeriodResponse(BaseResponse):
    month: int
    year: int
    created: int
    skipped: int

# ===== CÁLCULO DE PRECIOS =====

ORDER_TYPE_PATTERN = "^(minorista|mayorista)$"

class CalculationOption(BaseModel):
    name: str = ""
    quantity: float = Field(1, gt=0)

class CalculationItem(BaseModel):
    """Item de orden; `full_name` con formato "SECCION - PRODUCTO - PESO" si se conoce"""
    name: str = Field(..., min_length=1)
    full_name: Optional[str] = None
    options: List[CalculationOption] = []

class PriceCalculationRequest(BaseModel):
    product: str = Field(..., min_length=1, description='"PERRO - POLLO - 5KG"')
    order_type: str = Field("minorista", pattern=ORDER_TYPE_PATTERN)
    payment_method: Optional[str] = None
    delivery_day: Optional[date] = Field(None, description="Por defecto hoy")

    @validator('delivery_day', pre=True)
    def parse_delivery_day(cls, v):
        return parse_date(v)

class OrderTotalRequest(BaseModel):
    items: List[CalculationItem] = Field(..., min_length=1)
    order_type: str = Field("minorista", pattern=ORDER_TYPE_PATTERN)
    payment_method: Optional[str] = None
    delivery_day: Optional[date] = Field(None, description="Por defecto hoy")

    @validator('delivery_day', pre=True)
    def parse_delivery_day(cls, v):
        return parse_date(v)

class PriceCalculationResponse(BaseResponse):
    section: str
    product: str
    weight: Optional[str] = None
    price_type: str
    price: float

class ItemPrice(BaseModel):
    name: str
    weight: str
    unit_price: float
    quantity: float
    subtotal: float

class OrderTotalResponse(BaseResponse):
    total: float
    item_prices: List[ItemPrice]
    missing: List[str] = Field(default_factory=list, description="Items sin precio, no suman al total")

# ===== PRODUCTOS GESTOR =====

class ProductoGestorCreate(BaseModel):
    section: str = Field(..., pattern=SECTION_PATTERN)
    product: str = Field(..., min_length=1, max_length=255)
    weight: Optional[str] = None
    price_types: List[str] = Field(default_factory=lambda: list(PRICE_TYPES))
    is_active: bool = True
    order: Optional[int] = Field(None, ge=0, description="Por defecto al final")

    @validator('product')
    def normalize_product(cls, v):
        if not v.strip():
            raise ValueError('El producto no puede estar vacío')
        return v.strip().upper()

    @validator('weight', pre=True)
    def normalize_weight(cls, v):
        return _clean_weight(v)

    @validator('price_types')
    def validate_price_types(cls, v):
        return _validate_price_types(v)

class ProductoGestorUpdate(BaseModel):
    section: Optional[str] = Field(None, pattern=SECTION_PATTERN)
    product: Optional[str] = Field(None, min_length=1, max_length=255)
    weight: Optional[str] = None
    price_types: Optional[List[str]] = None
    is_active: Optional[bool] = None
    order: Optional[int] = Field(None, ge=0)

    not_null = reject_null('section', 'product', 'price_types', 'is_active', 'order')

    @validator('product')
    def normalize_product(cls, v):
        return v.strip().upper() if v else v

    @validator('weight', pre=True)
    def normalize_weight(cls, v):
        return _clean_weight(v)

    @validator('price_types')
    def validate_price_types(cls, v):
        return _validate_price_types(v) if v is not None else v

class ProductoGestorResponse(BaseModel):
    id: int
    section: str
    product: str
    weight: Optional[str] = None
    price_types: List[str] = []
    is_active: bool
    order: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class ProductoGestorDetailResponse(BaseResponse):
    producto: ProductoGestorResponse

class ProductoGestorListResponse(BaseResponse):
    productos: List[ProductoGestorResponse]
    total: int
