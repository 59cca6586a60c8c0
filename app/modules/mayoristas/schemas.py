from pydantic import BaseModel, Field, validator
from typing import Dict, List, Optional
from datetime import date, datetime

from app.shared.schemas.common import BaseResponse, reject_null
from app.shared.utils.dates import parse_date

ZONAS = ("CABA", "LA_PLATA", "OESTE", "NOROESTE", "NORTE", "SUR")
FRECUENCIAS = ("SEMANAL", "QUINCENAL", "MENSUAL", "OCASIONAL")
TIPOS_NEGOCIO = ("PET_SHOP", "VETERINARIA", "PELUQUERIA")

ZONA_PATTERN = "^(" + "|".join(ZONAS) + ")$"
FRECUENCIA_PATTERN = "^(" + "|".join(FRECUENCIAS) + ")$"

class MayoristaContacto(BaseModel):
    telefono: Optional[str] = None
    email: Optional[str] = None
    direccion: Optional[str] = None

class KilosMes(BaseModel):
    mes: int = Field(..., ge=1, le=12)
    anio: int = Field(..., ge=2000)
    kilos: float = Field(..., ge=0)

def _validate_tipos(v):
    for tipo in v or []:
        if tipo not in TIPOS_NEGOCIO:
            raise ValueError(f'Tipo de negocio inválido: {tipo}')
    return list(dict.fromkeys(v or []))

# ===== REQUESTS =====

class MayoristaCreate(BaseModel):
    """Schema para crear un punto de venta mayorista"""
    nombre: str = Field(..., min_length=1, max_length=255)
    zona: str = Field(..., pattern=ZONA_PATTERN)
    frecuencia: str = Field(..., pattern=FRECUENCIA_PATTERN)
    fecha_inicio_ventas: date
    fecha_primer_pedido: Optional[date] = None
    fecha_ultimo_pedido: Optional[date] = None
    tiene_freezer: bool = False
    cantidad_freezers: Optional[int] = Field(None, ge=0)
    capacidad_freezer: Optional[float] = Field(None, ge=0)
    tipos_negocio: List[str] = []
    horarios: Optional[str] = None
    contacto: Optional[MayoristaContacto] = None
    notas: Optional[str] = None

    @validator('nombre')
    def validate_nombre(cls, v):
        if not v.strip():
            raise ValueError('El nombre no puede estar vacío')
        return v.strip()

    @validator('fecha_inicio_ventas', 'fecha_primer_pedido', 'fecha_ultimo_pedido', pre=True)
    def parse_fechas(cls, v):
        return parse_date(v)

    @validator('tipos_negocio')
    def validate_tipos_negocio(cls, v):
        return _validate_tipos(v)

class MayoristaUpdate(BaseModel):
    """Actualización parcial; solo se modifican los campos enviados"""
    nombre: Optional[str] = Field(None, min_length=1, max_length=255)
    zona: Optional[str] = Field(None, pattern=ZONA_PATTERN)
    frecuencia: Optional[str] = Field(None, pattern=FRECUENCIA_PATTERN)
    fecha_inicio_ventas: Optional[date] = None
    fecha_primer_pedido: Optional[date] = None
    fecha_ultimo_pedido: Optional[date] = None
    tiene_freezer: Optional[bool] = None
    cantidad_freezers: Optional[int] = Field(None, ge=0)
    capacidad_freezer: Optional[float] = Field(None, ge=0)
    tipos_negocio: Optional[List[str]] = None
    horarios: Optional[str] = None
    contacto: Optional[MayoristaContacto] = None
    notas: Optional[str] = None
    activo: Optional[bool] = None

    not_null = reject_null('nombre', 'zona', 'frecuencia', 'fecha_inicio_ventas', 'tiene_freezer', 'tipos_negocio', 'activo')

    @validator('fecha_inicio_ventas', 'fecha_primer_pedido', 'fecha_ultimo_pedido', pre=True)
    def parse_fechas(cls, v):
        return parse_date(v)

    @validator('tipos_negocio')
    def validate_tipos_negocio(cls, v):
        return _validate_tipos(v) if v is not None else v

# ===== RESPONSES =====

class MayoristaResponse(BaseModel):
    id: int
    nombre: str
    zona: str
    frecuencia: str
    fecha_inicio_ventas: date
    fecha_primer_pedido: Optional[date] = None
    fecha_ultimo_pedido: Optional[date] = None
    tiene_freezer: bool
    cantidad_freezers: Optional[int] = None
    capacidad_freezer: Optional[float] = None
    tipos_negocio: List[str] = []
    horarios: Optional[str] = None
    contacto: MayoristaContacto
    notas: Optional[str] = None
    kilos_por_mes: List[KilosMes] = []
    activo: bool
    created_at: datetime
    updated_at: datetime

class MayoristaDetailResponse(BaseResponse):
    mayorista: MayoristaResponse

class MayoristaListResponse(BaseResponse):
    mayoristas: List[MayoristaResponse]
    total: int
    page_count: int

class PuntosVentaSearchResponse(BaseResponse):
    puntos_venta: List[MayoristaResponse]

class VentasZona(BaseModel):
    zona: str
    total_mayoristas: int
    total_kilos_ultimo_mes: float

class VentasPorZonaResponse(BaseResponse):
    mes: int
    anio: int
    zonas: List[VentasZona]

class MayoristaEstadistica(BaseModel):
    id: int
    nombre: str
    zona: str
    kilos_por_mes: List[float] = Field(..., description="Kilos de enero a diciembre")
    total_kilos: float
    promedio_mensual: float

class MayoristaStatisticsResponse(BaseResponse):
    anio: int
    mayoristas: List[MayoristaEstadistica]
    total_kilos: float

# ===== ESTADÍSTICAS DESDE ÓRDENES =====

class PuntoVentaStats(BaseModel):
    id: int
    nombre: str
    zona: str
    telefono: str
    kg_totales: int
    frecuencia_compra: str
    promedio_kg_por_pedido: int
    kg_ultima_compra: int
    total_pedidos: int
    fecha_primer_pedido: Optional[datetime] = None
    fecha_ultimo_pedido: Optional[datetime] = None

class PuntosVentaStatsResponse(BaseResponse):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    stats: List[PuntoVentaStats]

class ProductoMatrixRow(BaseModel):
    punto_venta_id: int
    punto_venta_nombre: str
    zona: str
    productos: Dict[str, float]
    total_kilos: float = Field(..., description="Solo productos que suman kilos (perro, gato, huesos carnosos)")

class ProductosMatrixResponse(BaseResponse):
    mes: int
    anio: int
    date_from: date
    date_to: date
    product_names: List[str]
    matrix: List[ProductoMatrixRow]
