from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date, datetime
import logging

from app.core.auth.dependencies import get_allowed_puntos_envio, can_access_punto_envio
from app.shared.database.models import Order, User
from app.shared.utils.dates import (
    now_local, local_date, local_day_bounds_utc, format_day, next_working_day
)
from app.modules.orders.repository import OrderRepository
from app.modules.orders.schemas import OrderResponse
from .repository import ExpressRepository
from .sales_calculator import calculate_sales_from_orders
from .schemas import (
    PuntoEnvioCreate, PuntoEnvioUpdate, PuntoEnvioResponse,
    PuntoEnvioDetailResponse, PuntoEnvioListResponse,
    StockCreate, StockUpdate, StockResponse, StockDetailResponse, StockListResponse,
    OrderPriorityRequest, OrderPriorityResponse,
    ExpressOrdersResponse, OrderCountResponse, StockRolloverResponse
)

logger = logging.getLogger(__name__)

# Hora de corte cuando el punto no tiene una configurada
DEFAULT_CUTOFF_HOUR = 14


def is_express_candidate(order: Order) -> bool:
    """Transferencia bancaria, envío en el día o punto de envío asignado"""
    return (
        order.payment_method == "bank-transfer"
        or order.is_same_day
        or bool((order.punto_envio or "").strip())
    )


def order_express_day(order: Order) -> date:
    """El día de entrega manda; si no hay, el día de creación en hora local"""
    if order.delivery_day:
        return order.delivery_day
    return local_date(order.created_at)


def cutoff_hour(cutoff_time: Optional[str]) -> int:
    if not cutoff_time:
        return DEFAULT_CUTOFF_HOUR
    return int(cutoff_time.split(":")[0])


def compute_stock_final(stock_inicial: float, llevamos: float, pedidos_del_dia: float) -> float:
    return max(0, (stock_inicial or 0) + (llevamos or 0) - (pedidos_del_dia or 0))


class ExpressService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = ExpressRepository(db)
        self.order_repository = OrderRepository(db)

    # ===== PEDIDOS EXPRESS =====

    def find_express_orders(
        self,
        punto_envio: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        allowed_puntos: Optional[List[str]] = None
    ) -> List[Order]:
        """
        Pedidos express, opcionalmente por punto y rango de días.

        Si solo viene `date_from` se toma como un único día.
        """
        if date_from is None and date_to is not None:
            date_from = date_to
        if date_from is not None and date_to is None:
            date_to = date_from

        if date_from is not None:
            created_from, _ = local_day_bounds_utc(date_from)
            _, created_to = local_day_bounds_utc(date_to)
            candidates = self.order_repository.find_for_express(date_from, date_to, created_from, created_to)
        else:
            candidates = self.order_repository.find_for_express()

        orders = []
        for order in candidates:
            if not is_express_candidate(order):
                continue
            if punto_envio and order.punto_envio != punto_envio:
                continue
            if allowed_puntos is not None and order.punto_envio not in allowed_puntos:
                continue
            if date_from is not None and not (date_from <= order_express_day(order) <= date_to):
                continue
            orders.append(order)
        return orders

    async def get_express_orders(
        self,
        current_user: User,
        punto_envio: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> ExpressOrdersResponse:
        allowed = get_allowed_puntos_envio(current_user)
        if punto_envio and allowed is not None and punto_envio not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"No tienes acceso al punto de envío {punto_envio}"
            )

        try:
            orders = self.find_express_orders(punto_envio, date_from, date_to, allowed)
            return ExpressOrdersResponse(
                success=True,
                message=f"{len(orders)} pedidos express encontrados",
                orders=[OrderResponse.model_validate(o) for o in orders],
                total=len(orders)
            )
        except Exception as e:
            logger.error(f"Error obteniendo pedidos express: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo pedidos express: {str(e)}")

    async def count_orders_by_day(self, current_user: User, punto_envio: str, day: date) -> OrderCountResponse:
        """Órdenes creadas ese día (hora local) para el punto, sin importar estado"""
        if not can_access_punto_envio(current_user, punto_envio):
            raise HTTPException(status_code=403, detail=f"No tienes acceso al punto de envío {punto_envio}")
        start, end = local_day_bounds_utc(day)
        count = self.repository.count_orders_created_between(punto_envio, start, end)
        return OrderCountResponse(
            success=True,
            message="Conteo de órdenes del día",
            punto_envio=punto_envio,
            fecha=day,
            count=count
        )

    # ===== PUNTOS DE ENVÍO =====

    async def list_puntos_envio(self, current_user: User) -> PuntoEnvioListResponse:
        puntos = self.repository.get_puntos_envio()
        allowed = get_allowed_puntos_envio(current_user)
        if allowed is not None:
            puntos = [p for p in puntos if p.nombre in allowed]
        return PuntoEnvioListResponse(
            success=True,
            message=f"{len(puntos)} puntos de envío",
            puntos_envio=[PuntoEnvioResponse.model_validate(p) for p in puntos],
            total=len(puntos)
        )

    async def create_punto_envio(self, data: PuntoEnvioCreate) -> PuntoEnvioDetailResponse:
        try:
            if self.repository.get_punto_envio_by_name(data.nombre):
                raise HTTPException(
                    status_code=409,
                    detail=f"Ya existe un punto de envío con el nombre {data.nombre}"
                )
            punto = self.repository.create_punto_envio(data.model_dump())
            logger.info(f"Punto de envío creado: {punto.nombre}")
            return PuntoEnvioDetailResponse(
                success=True,
                message="Punto de envío creado exitosamente",
                punto_envio=PuntoEnvioResponse.model_validate(punto)
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creando punto de envío: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error creando punto de envío: {str(e)}")

    async def update_punto_envio(self, punto_id: int, data: PuntoEnvioUpdate) -> PuntoEnvioDetailResponse:
        try:
            punto = self.repository.get_punto_envio(punto_id)
            if not punto:
                raise HTTPException(status_code=404, detail="Punto de envío no encontrado")

            changes = data.model_dump(exclude_unset=True)
            if changes.get("nombre"):
                existing = self.repository.get_punto_envio_by_name(changes["nombre"])
                if existing and existing.id != punto_id:
                    raise HTTPException(
                        status_code=409,
                        detail=f"Ya existe un punto de envío con el nombre {changes['nombre']}"
                    )

            punto = self.repository.update_punto_envio(punto, changes)
            return PuntoEnvioDetailResponse(
                success=True,
                message="Punto de envío actualizado exitosamente",
                punto_envio=PuntoEnvioResponse.model_validate(punto)
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error actualizando punto de envío {punto_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error actualizando punto de envío: {str(e)}")

    async def delete_punto_envio(self, punto_id: int) -> dict:
        punto = self.repository.get_punto_envio(punto_id)
        if not punto:
            raise HTTPException(status_code=404, detail="Punto de envío no encontrado")
        self.repository.delete_punto_envio(punto)
        logger.info(f"Punto de envío eliminado: {punto_id}")
        return {"success": True, "message": "Punto de envío eliminado exitosamente"}

    # ===== STOCK =====

    async def get_stock(self, punto_envio: str, fecha: Optional[date] = None) -> StockListResponse:
        stock = self.repository.get_stock_by_punto(punto_envio, format_day(fecha) if fecha else None)
        return StockListResponse(
            success=True,
            message=f"{len(stock)} registros de stock",
            stock=[StockResponse.model_validate(s) for s in stock],
            total=len(stock)
        )

    async def create_stock(self, data: StockCreate) -> StockDetailResponse:
        try:
            stock_data = data.model_dump()
            if stock_data["stock_final"] is None:
                stock_data["stock_final"] = compute_stock_final(
                    data.stock_inicial, data.llevamos, data.pedidos_del_dia
                )
            stock = self.repository.create_stock(stock_data)
            logger.info(f"Stock creado: {stock.producto} en {stock.punto_envio} ({stock.fecha})")
            return StockDetailResponse(
                success=True,
                message="Stock creado exitosamente",
                stock=StockResponse.model_validate(stock)
            )
        except Exception as e:
            logger.error(f"Error creando stock: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error creando stock: {str(e)}")

    async def update_stock(self, stock_id: int, data: StockUpdate) -> StockDetailResponse:
        try:
            stock = self.repository.get_stock(stock_id)
            if not stock:
                raise HTTPException(status_code=404, detail="Stock no encontrado")

            changes = data.model_dump(exclude_unset=True)
            quantities = {"stock_inicial", "llevamos", "pedidos_del_dia"}
            if quantities & set(changes) and changes.get("stock_final") is None:
                changes["stock_final"] = compute_stock_final(
                    changes.get("stock_inicial", stock.stock_inicial),
                    changes.get("llevamos", stock.llevamos),
                    changes.get("pedidos_del_dia", stock.pedidos_del_dia)
                )
            changes = {k: v for k, v in changes.items() if v is not None}

            stock = self.repository.update_stock(stock, changes)
            return StockDetailResponse(
                success=True,
                message="Stock actualizado exitosamente",
                stock=StockResponse.model_validate(stock)
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error actualizando stock {stock_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error actualizando stock: {str(e)}")

    # ===== PRIORIDAD =====

    async def save_priority(self, data: OrderPriorityRequest) -> OrderPriorityResponse:
        priority = self.repository.save_priority(data.fecha, data.punto_envio, data.order_ids)
        return OrderPriorityResponse(
            success=True,
            message="Prioridad guardada",
            fecha=priority.fecha,
            punto_envio=priority.punto_envio,
            order_ids=priority.order_ids
        )

    async def get_priority(self, fecha: date, punto_envio: str) -> OrderPriorityResponse:
        fecha_str = format_day(fecha)
        priority = self.repository.get_priority(fecha_str, punto_envio)
        return OrderPriorityResponse(
            success=True,
            message="Prioridad de pedidos",
            fecha=fecha_str,
            punto_envio=punto_envio,
            order_ids=priority.order_ids if priority else []
        )

    # ===== ROLLOVER DE STOCK =====

    def perform_stock_rollover(self, now: Optional[datetime] = None) -> StockRolloverResponse:
        """
        Pasar el stock de hoy al próximo día hábil en los puntos cuya hora
        de corte ya pasó. Stock inicial de mañana = inicial + llevamos - vendido hoy.
        """
        now = now or now_local()
        today = now.date()
        today_str = format_day(today)
        next_day_str = format_day(next_working_day(today))
        logger.info(f"Rollover de stock: hoy {today_str}, próximo día hábil {next_day_str}")

        processed = []
        created = 0
        for punto in self.repository.get_puntos_envio():
            if now.hour < cutoff_hour(punto.cutoff_time):
                continue

            stock_today = self.repository.get_stock_by_punto(punto.nombre, today_str)
            if not stock_today:
                logger.info(f"Sin stock para {today_str} en {punto.nombre}")
                continue

            processed.append(punto.nombre)
            orders_today = self.find_express_orders(punto.nombre, today, today)

            for item in stock_today:
                if self.repository.stock_exists(punto.nombre, item.producto, item.peso, next_day_str):
                    continue

                sold = calculate_sales_from_orders(item.producto, item.section, item.peso, orders_today)
                stock_inicial = max(0, (item.stock_inicial or 0) + (item.llevamos or 0) - sold)

                self.repository.create_stock({
                    "punto_envio": punto.nombre,
                    "section": item.section,
                    "producto": item.producto,
                    "peso": item.peso,
                    "fecha": next_day_str,
                    "stock_inicial": stock_inicial,
                    "llevamos": 0,
                    "pedidos_del_dia": 0,
                    "stock_final": stock_inicial,
                }, commit=False)
                created += 1
                logger.info(
                    f"Stock de {item.producto} ({item.peso or '-'}) pasado a {next_day_str}: {stock_inicial}"
                )

        self.repository.commit()
        return StockRolloverResponse(
            success=True,
            message=f"Rollover completado: {created} registros creados",
            today=today_str,
            next_day=next_day_str,
            puntos_procesados=processed,
            stock_creado=created
        )
