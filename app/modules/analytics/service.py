from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import Dict, Iterable, List, Optional
from datetime import date, timedelta
import logging

from app.shared.database.models import Order
from app.shared.utils.dates import local_date, month_key, previous_period, percent_change
from app.shared.utils.products import (
    calculate_item_weight, categorize_product, get_sales_category,
    iter_item_lines, line_quantity, SALES_CATEGORIES
)
from .repository import AnalyticsRepository
from .schemas import (
    AnalyticsPeriod, MonthlyOrders, OrdersByMonthResponse,
    CategorySales, CategorySalesResponse,
    ProductQuantity, QuantityStatsByType, QuantityStatsResponse,
    DeliveryTypeStats, DeliveryTypeStatsResponse,
    PeriodTotals, PeriodChanges, AnalyticsSummaryResponse
)

logger = logging.getLogger(__name__)

QUANTITY_FIELDS = (
    "pollo", "vaca", "cerdo", "cordero", "bigDogPollo", "bigDogVaca",
    "gatoPollo", "gatoVaca", "gatoCordero", "huesosCarnosos"
)
PERRO_FIELDS = ("pollo", "vaca", "cerdo", "cordero", "bigDogPollo", "bigDogVaca")
GATO_FIELDS = ("gatoPollo", "gatoVaca", "gatoCordero")

# Corrimiento usado cuando la orden no tiene día de entrega
EFFECTIVE_DATE_OFFSET = timedelta(hours=3)


def effective_date(order: Order) -> date:
    if order.delivery_day:
        return order.delivery_day
    return (order.created_at - EFFECTIVE_DATE_OFFSET).date()


def quantity_client_type(order: Order) -> str:
    if order.is_same_day or order.payment_method == "bank-transfer":
        return "sameDay"
    if order.order_type == "mayorista":
        return "mayorista"
    return "minorista"


def order_kilos(order: Order) -> float:
    total = 0.0
    for item, option in iter_item_lines(order.items):
        weight = calculate_item_weight(item.get("name"), (option or {}).get("name", ""))
        total += weight * line_quantity(item, option)
    return total


def aggregate_orders_by_month(orders: Iterable[Order]) -> List[MonthlyOrders]:
    buckets: Dict[str, dict] = {}
    for order in orders:
        key = month_key(local_date(order.created_at))
        bucket = buckets.setdefault(key, {"orders": 0, "revenue": 0.0, "customers": set()})
        bucket["orders"] += 1
        bucket["revenue"] += order.total or 0
        if order.buyer_email:
            bucket["customers"].add(order.buyer_email)

    return [
        MonthlyOrders(
            month=key,
            orders=b["orders"],
            revenue=round(b["revenue"], 2),
            unique_customers=len(b["customers"])
        )
        for key, b in sorted(buckets.items())
    ]


def aggregate_category_sales(orders: List[Order], status_filter: str, limit: int) -> List[CategorySales]:
    categories: Dict[str, dict] = {}
    for order in orders:
        for item in order.items or []:
            category = get_sales_category(item.get("name"))
            if category not in SALES_CATEGORIES:
                continue
            for option in item.get("options") or []:
                quantity = option.get("quantity") or 0
                price = option.get("price") or 0
                data = categories.setdefault(category, {
                    "quantity": 0, "revenue": 0.0, "lines": 0,
                    "products": set(), "prices": [], "weight": 0.0
                })
                data["quantity"] += quantity
                data["revenue"] += quantity * price
                data["lines"] += 1
                data["products"].add(item.get("name"))
                data["prices"].append(price)
                data["weight"] += calculate_item_weight(item.get("name"), option.get("name", "")) * quantity

    # Los BIG DOG suelen venir sin precio por opción: se usa el total de la orden
    big_dog = categories.get("BIG DOG")
    if big_dog and big_dog["revenue"] == 0:
        big_dog["revenue"] = sum(
            o.total or 0 for o in orders
            if any("big dog" in (i.get("name") or "").lower() for i in o.items or [])
        )

    result = [
        CategorySales(
            category_name=name,
            quantity=data["quantity"],
            revenue=round(data["revenue"], 2),
            orders=data["lines"],
            unique_products=len(data["products"]),
            avg_price=round(sum(data["prices"]) / len(data["prices"])) if data["prices"] else 0,
            status_filter=status_filter,
            total_weight=data["weight"] if data["weight"] > 0 else None
        )
        for name, data in categories.items()
    ]
    result.sort(key=lambda c: c.quantity, reverse=True)
    return result[:limit]


def aggregate_quantity_stats(orders: Iterable[Order]) -> QuantityStatsByType:
    grouped: Dict[str, Dict[str, dict]] = {}
    for order in orders:
        month = month_key(effective_date(order))
        client_type = quantity_client_type(order)
        month_data = grouped.setdefault(month, {
            t: {field: 0.0 for field in QUANTITY_FIELDS + ("totalMes",)}
            for t in ("minorista", "sameDay", "mayorista")
        })
        data = month_data[client_type]

        for item, option in iter_item_lines(order.items):
            option_name = (option or {}).get("name", "")
            kilos = calculate_item_weight(item.get("name"), option_name) * line_quantity(item, option)
            _, subcategory = categorize_product(item.get("name"), option_name)
            if subcategory in QUANTITY_FIELDS:
                data[subcategory] += kilos
            data["totalMes"] += kilos

    result = QuantityStatsByType()
    for month in sorted(grouped):
        for client_type, data in grouped[month].items():
            data["totalPerro"] = sum(data[f] for f in PERRO_FIELDS)
            data["totalGato"] = sum(data[f] for f in GATO_FIELDS)
            rounded = {key: round(value, 2) for key, value in data.items()}
            getattr(result, client_type).append(ProductQuantity(month=month, **rounded))
    return result


def aggregate_delivery_types(orders: Iterable[Order]) -> List[DeliveryTypeStats]:
    months: Dict[str, DeliveryTypeStats] = {}
    for order in orders:
        key = month_key(local_date(order.created_at))
        stats = months.setdefault(key, DeliveryTypeStats(month=key))

        if order.order_type == "mayorista":
            prefix = "wholesale"
        elif order.is_same_day:
            prefix = "same_day"
        else:
            prefix = "normal"

        setattr(stats, f"{prefix}_orders", getattr(stats, f"{prefix}_orders") + 1)
        setattr(stats, f"{prefix}_revenue", getattr(stats, f"{prefix}_revenue") + (order.total or 0))
        setattr(stats, f"{prefix}_weight", getattr(stats, f"{prefix}_weight") + order_kilos(order))

    result = []
    for key in sorted(months):
        stats = months[key]
        for prefix in ("same_day", "normal", "wholesale"):
            setattr(stats, f"{prefix}_revenue", round(getattr(stats, f"{prefix}_revenue"), 2))
            setattr(stats, f"{prefix}_weight", round(getattr(stats, f"{prefix}_weight"), 2))
        result.append(stats)
    return result


def period_totals(orders: List[Order]) -> PeriodTotals:
    count = len(orders)
    revenue = sum(o.total or 0 for o in orders)
    kilos = sum(order_kilos(o) for o in orders)
    return PeriodTotals(
        orders=count,
        revenue=round(revenue, 2),
        kilos=round(kilos, 2),
        average_ticket=round(revenue / count, 2) if count else 0
    )


def resolve_compare_period(
    start_date: Optional[date],
    end_date: Optional[date],
    compare: bool,
    compare_start: Optional[date],
    compare_end: Optional[date]
) -> Optional[AnalyticsPeriod]:
    """Período de comparación explícito o el anterior de igual duración"""
    if compare_start and compare_end:
        return AnalyticsPeriod(start_date=compare_start, end_date=compare_end)
    if compare:
        if not (start_date and end_date):
            raise HTTPException(
                status_code=400,
                detail="Para comparar sin fechas explícitas se requieren start_date y end_date"
            )
        prev_start, prev_end = previous_period(start_date, end_date)
        return AnalyticsPeriod(start_date=prev_start, end_date=prev_end)
    return None


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = AnalyticsRepository(db)

    def _validate_range(self, start_date: Optional[date], end_date: Optional[date]):
        if start_date and end_date and start_date > end_date:
            raise HTTPException(
                status_code=400,
                detail="La fecha de inicio no puede ser posterior a la fecha de fin"
            )

    async def get_orders_by_month(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        compare: bool = False,
        compare_start: Optional[date] = None,
        compare_end: Optional[date] = None
    ) -> OrdersByMonthResponse:
        self._validate_range(start_date, end_date)
        compare_period = resolve_compare_period(start_date, end_date, compare, compare_start, compare_end)
        try:
            data = aggregate_orders_by_month(self.repository.orders_created_in(start_date, end_date))
            compare_data = None
            if compare_period:
                compare_data = aggregate_orders_by_month(
                    self.repository.orders_created_in(compare_period.start_date, compare_period.end_date)
                )
            return OrdersByMonthResponse(
                success=True,
                message="Órdenes por mes",
                period=AnalyticsPeriod(start_date=start_date, end_date=end_date),
                data=data,
                compare_period=compare_period,
                compare_data=compare_data
            )
        except Exception as e:
            logger.error(f"Error obteniendo órdenes por mes: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo órdenes por mes: {str(e)}")

    async def get_category_sales(
        self,
        status_filter: str = "all",
        limit: int = 10,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> CategorySalesResponse:
        self._validate_range(start_date, end_date)
        try:
            status = status_filter if status_filter != "all" else None
            orders = self.repository.orders_created_in(start_date, end_date, status)
            return CategorySalesResponse(
                success=True,
                message="Ventas por categoría",
                period=AnalyticsPeriod(start_date=start_date, end_date=end_date),
                data=aggregate_category_sales(orders, status_filter, limit)
            )
        except Exception as e:
            logger.error(f"Error obteniendo ventas por categoría: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo ventas por categoría: {str(e)}")

    async def get_quantity_stats(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> QuantityStatsResponse:
        self._validate_range(start_date, end_date)
        try:
            orders = [
                o for o in self.repository.orders_near_days(start_date, end_date)
                if (not start_date or effective_date(o) >= start_date)
                and (not end_date or effective_date(o) <= end_date)
            ]
            return QuantityStatsResponse(
                success=True,
                message="Kilos por mes",
                period=AnalyticsPeriod(start_date=start_date, end_date=end_date),
                data=aggregate_quantity_stats(orders)
            )
        except Exception as e:
            logger.error(f"Error obteniendo kilos por mes: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo kilos por mes: {str(e)}")

    async def get_delivery_type_stats(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> DeliveryTypeStatsResponse:
        self._validate_range(start_date, end_date)
        try:
            orders = self.repository.orders_created_in(start_date, end_date)
            return DeliveryTypeStatsResponse(
                success=True,
                message="Estadísticas por tipo de entrega",
                period=AnalyticsPeriod(start_date=start_date, end_date=end_date),
                data=aggregate_delivery_types(orders)
            )
        except Exception as e:
            logger.error(f"Error obteniendo estadísticas por tipo de entrega: {str(e)}")
            raise HTTPException(
                status_code=500,
                detail=f"Error obteniendo estadísticas por tipo de entrega: {str(e)}"
            )

    async def get_summary(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        compare: bool = False,
        compare_start: Optional[date] = None,
        compare_end: Optional[date] = None
    ) -> AnalyticsSummaryResponse:
        """Totales del período y, si se pide, variación contra el período de comparación"""
        self._validate_range(start_date, end_date)
        compare_period = resolve_compare_period(start_date, end_date, compare, compare_start, compare_end)
        try:
            current = period_totals(self.repository.orders_created_in(start_date, end_date))
            previous = None
            changes = None
            if compare_period:
                previous = period_totals(
                    self.repository.orders_created_in(compare_period.start_date, compare_period.end_date)
                )
                changes = PeriodChanges(
                    orders=percent_change(current.orders, previous.orders),
                    revenue=percent_change(current.revenue, previous.revenue),
                    kilos=percent_change(current.kilos, previous.kilos),
                    average_ticket=percent_change(current.average_ticket, previous.average_ticket)
                )
            return AnalyticsSummaryResponse(
                success=True,
                message="Resumen del período",
                period=AnalyticsPeriod(start_date=start_date, end_date=end_date),
                current=current,
                compare_period=compare_period,
                previous=previous,
                changes=changes
            )
        except Exception as e:
            logger.error(f"Error obteniendo resumen: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo resumen: {str(e)}")
