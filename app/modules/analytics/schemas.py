from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date

from app.shared.schemas.common import BaseResponse

class AnalyticsPeriod(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None

# ===== ÓRDENES POR MES =====

class MonthlyOrders(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    orders: int
    revenue: float
    unique_customers: int

class OrdersByMonthResponse(BaseResponse):
    period: AnalyticsPeriod
    data: List[MonthlyOrders]
    compare_period: Optional[AnalyticsPeriod] = None
    compare_data: Optional[List[MonthlyOrders]] = None

# ===== VENTAS POR CATEGORÍA =====

class CategorySales(BaseModel):
    category_name: str
    quantity: float
    revenue: float
    orders: int
    unique_products: int
    avg_price: int
    status_filter: str
    total_weight: Optional[float] = None

class CategorySalesResponse(BaseResponse):
    period: AnalyticsPeriod
    data: List[CategorySales]

# ===== KILOS POR MES =====

class ProductQuantity(BaseModel):
    month: str
    pollo: float = 0
    vaca: float = 0
    cerdo: float = 0
    cordero: float = 0
    bigDogPollo: float = 0
    bigDogVaca: float = 0
    totalPerro: float = 0
    gatoPollo: float = 0
    gatoVaca: float = 0
    gatoCordero: float = 0
    totalGato: float = 0
    huesosCarnosos: float = 0
    totalMes: float = 0

class QuantityStatsByType(BaseModel):
    minorista: List[ProductQuantity] = []
    sameDay: List[ProductQuantity] = []
    mayorista: List[ProductQuantity] = []

class QuantityStatsResponse(BaseResponse):
    period: AnalyticsPeriod
    data: QuantityStatsByType

# ===== TIPO DE ENTREGA =====

class DeliveryTypeStats(BaseModel):
    month: str
    same_day_orders: int = 0
    normal_orders: int = 0
    wholesale_orders: int = 0
    same_day_revenue: float = 0
    normal_revenue: float = 0
    wholesale_revenue: float = 0
    same_day_weight: float = 0
    normal_weight: float = 0
    wholesale_weight: float = 0

class DeliveryTypeStatsResponse(BaseResponse):
    period: AnalyticsPeriod
    data: List[DeliveryTypeStats]

# ===== RESUMEN =====

class PeriodTotals(BaseModel):
    orders: int
    revenue: float
    kilos: float
    average_ticket: float

class PeriodChanges(BaseModel):
    orders: Optional[float] = None
    revenue: Optional[float] = None
    kilos: Optional[float] = None
    average_ticket: Optional[float] = None

class AnalyticsSummaryResponse(BaseResponse):
    period: AnalyticsPeriod
    current: PeriodTotals
    compare_period: Optional[AnalyticsPeriod] = None
    previous: Optional[PeriodTotals] = None
    changes: Optional[PeriodChanges] = None
