from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import csv
import io
import logging
import re

from app.modules.prices.service import PriceService
from app.shared.database.models import Order
from app.shared.schemas.common import page_count
from app.shared.utils.dates import utcnow, format_day
from .repository import OrderRepository
from .schemas import (
    OrderCreate, OrderUpdate, OrderResponse, OrderDetailResponse,
    OrderListResponse, OrderListParams, EstadoEnvioUpdate, MayoristaOrderCreate,
    MayoristaPersonaResponse, MayoristaPersonaSearchResponse
)

logger = logging.getLogger(__name__)

# Términos en español -> valores guardados
SEARCH_SYNONYMS = {
    "pendiente": ["pending"],
    "confirmado": ["confirmed"],
    "entregado": ["delivered"],
    "cancelado": ["cancelled"],
    "efectivo": ["cash"],
    "transferencia": ["transfer", "bank-transfer"],
    "mercado-pago": ["mercado-pago"],
}

MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 10

SORTABLE_FIELDS = ("created_at", "updated_at", "total", "delivery_day", "status", "order_type")

CSV_HEADERS = [
    "id", "fecha_creacion", "fecha_entrega", "estado", "tipo", "cliente", "email",
    "telefono", "direccion", "ciudad", "productos", "medio_pago", "subtotal",
    "envio", "total", "notas", "notas_propias"
]


def normalize_schedule_time(schedule: Optional[str]) -> Optional[str]:
    """
    Normalizar horarios escritos a mano:
    "18.30" -> "18:30", "18hs" -> "18:00hs", "1830" -> "18:30".
    """
    if not schedule:
        return schedule
    if ":" in schedule and "." not in schedule:
        return schedule

    def _pad(match):
        return f"{match.group(1)}:{match.group(2).zfill(2)}"

    normalized = re.sub(r"(\d{1,2})\s*\.\s*(\d{1,2})", _pad, schedule)
    normalized = re.sub(r"(\d{1,2})(?<!:\d{2})hs", r"\1:00hs", normalized)

    def _four_digits(match):
        if 0 <= int(match.group(2)) <= 59:
            return f"{match.group(1)}:{match.group(2)}"
        return match.group(0)

    return re.sub(r"(?<![\d:])(\d{1,2})(\d{2})(?=\s|hs|$|a)", _four_digits, normalized)


def _search_terms(search: str) -> List[List[str]]:
    """Cada palabra con sus alternativas; todas las palabras deben coincidir"""
    text = re.sub(r"mercado\s+pago", "mercado-pago", search.strip().lower())
    terms = []
    for word in text.split():
        terms.append([word] + SEARCH_SYNONYMS.get(word, []))
    return terms


def _searchable_text(order: Order) -> str:
    buyer = order.buyer or {}
    address = order.address or {}
    parts = [
        buyer.get("name"), buyer.get("lastName"), buyer.get("email"),
        address.get("address"), address.get("city"), address.get("phone"),
        order.payment_method, order.status, order.notes, order.notes_own,
        order.order_type or "minorista", str(order.total),
    ]
    parts.extend(item.get("name") for item in order.items or [])
    return " ".join(str(p) for p in parts if p).lower()


def matches_search(order: Order, search: Optional[str]) -> bool:
    if not search or not search.strip():
        return True
    text = _searchable_text(order)
    return all(
        any(alternative in text for alternative in alternatives)
        for alternatives in _search_terms(search)
    )


class OrderService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = OrderRepository(db)

    def _get_or_404(self, order_id: int) -> Order:
        order = self.repository.get_by_id(order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Orden no encontrada")
        return order

    def _sort_args(self, params: OrderListParams) -> dict:
        sort_by = params.sort_by if params.sort_by in SORTABLE_FIELDS else "created_at"
        return {"sort_by": sort_by, "sort_desc": params.sort_desc}

    def filter_orders(self, params: OrderListParams) -> List[Order]:
        """Órdenes no express que cumplen fechas, tipo y búsqueda, ya ordenadas"""
        orders = self.repository.find_orders(
            params.date_from, params.date_to, params.order_type, **self._sort_args(params)
        )
        return [o for o in orders if matches_search(o, params.search)]

    def _page(self, params: OrderListParams):
        """Página pedida y total. Sin búsqueda pagina la base directamente"""
        start = params.page_index * params.page_size
        if params.search and params.search.strip():
            orders = self.filter_orders(params)
            return orders[start:start + params.page_size], len(orders)

        total = self.repository.count_orders(params.date_from, params.date_to, params.order_type)
        page = self.repository.find_orders(
            params.date_from, params.date_to, params.order_type,
            offset=start, limit=params.page_size, **self._sort_args(params)
        )
        return page, total

    # ===== LISTADO =====

    async def list_orders(self, params: OrderListParams) -> OrderListResponse:
        try:
            page, total = self._page(params)

            return OrderListResponse(
                success=True,
                message=f"{total} órdenes encontradas",
                orders=[OrderResponse.model_validate(o) for o in page],
                total=total,
                page_count=page_count(total, params.page_size)
            )
        except Exception as e:
            logger.error(f"Error listando órdenes: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error listando órdenes: {str(e)}")

    async def export_csv(self, params: OrderListParams) -> str:
        """CSV con todas las órdenes del filtro (sin paginar)"""
        try:
            orders = self.filter_orders(params)
            output = io.StringIO()
            writer = csv.writer(output)
            writer.writerow(CSV_HEADERS)
            for o in orders:
                buyer = o.buyer or {}
                address = o.address or {}
                productos = "; ".join(
                    f"{item.get('name')} "
                    + " ".join(f"{opt.get('name', '')} x{opt.get('quantity', 1)}" for opt in item.get("options") or [])
                    for item in o.items or []
                )
                writer.writerow([
                    o.id,
                    o.created_at.strftime("%Y-%m-%d %H:%M"),
                    format_day(o.delivery_day) if o.delivery_day else "",
                    o.status,
                    o.order_type or "minorista",
                    f"{buyer.get('name', '')} {buyer.get('lastName', '')}".strip(),
                    buyer.get("email", ""),
                    address.get("phone", ""),
                    address.get("address", ""),
                    address.get("city", ""),
                    productos.strip(),
                    o.payment_method or "",
                    o.sub_total,
                    o.shipping_price,
                    o.total,
                    o.notes or "",
                    o.notes_own or "",
                ])
            logger.info(f"Exportadas {len(orders)} órdenes a CSV")
            return output.getvalue()
        except Exception as e:
            logger.error(f"Error exportando órdenes: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error exportando órdenes: {str(e)}")

    # ===== CRUD =====

    async def get_order(self, order_id: int) -> OrderDetailResponse:
        order = self._get_or_404(order_id)
        return OrderDetailResponse(
            success=True,
            message="Orden encontrada",
            order=OrderResponse.model_validate(order)
        )

    async def create_order(self, data: OrderCreate) -> OrderDetailResponse:
        try:
            order_data = data.model_dump()
            if order_data["total"] is None:
                order_data["total"] = order_data["sub_total"] + order_data["shipping_price"]
            if order_data.get("delivery_area") and order_data["delivery_area"].get("schedule"):
                order_data["delivery_area"]["schedule"] = normalize_schedule_time(
                    order_data["delivery_area"]["schedule"]
                )
            order_data["buyer_email"] = order_data["buyer"].get("email") or None

            order = self.repository.create(order_data)
            logger.info(f"Orden creada: {order.id} ({order.order_type})")

            return OrderDetailResponse(
                success=True,
                message="Orden creada exitosamente",
                order=OrderResponse.model_validate(order)
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creando orden: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error creando orden: {str(e)}")

    async def update_order(self, order_id: int, data: OrderUpdate) -> OrderDetailResponse:
        try:
            order = self._get_or_404(order_id)
            changes = data.model_dump(exclude_unset=True)

            delivery_area = changes.get("delivery_area")
            if delivery_area and delivery_area.get("schedule"):
                delivery_area["schedule"] = normalize_schedule_time(delivery_area["schedule"])
            if "buyer" in changes and changes["buyer"] is not None:
                changes["buyer_email"] = changes["buyer"].get("email") or None

            order = self.repository.update(order, changes)
            logger.info(f"Orden actualizada: {order.id}")

            return OrderDetailResponse(
                success=True,
                message="Orden actualizada exitosamente",
                order=OrderResponse.model_validate(order)
            )
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error actualizando orden {order_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error actualizando orden: {str(e)}")

    async def delete_order(self, order_id: int) -> dict:
        order = self._get_or_404(order_id)
        try:
            self.repository.delete(order)
            logger.info(f"Orden eliminada: {order_id}")
            return {"success": True, "message": "Orden eliminada exitosamente"}
        except Exception as e:
            logger.error(f"Error eliminando orden {order_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error eliminando orden: {str(e)}")

    # ===== ÓRDENES MAYORISTAS =====

    def _persona_data(self, buyer: dict, address: dict) -> dict:
        return {
            "name": (buyer.get("name") or "").strip(),
            "last_name": (buyer.get("lastName") or "").strip(),
            "email": buyer.get("email") or None,
            "phone": buyer.get("phone") or address.get("phone") or None,
            "address": {k: v for k, v in address.items() if v} or None,
        }

    async def create_mayorista_order(self, data: MayoristaOrderCreate) -> OrderDetailResponse:
        """
        Crear una orden mayorista.

        El punto de venta, si viene, tiene que existir y estar activo. Sin
        total se suman los precios MAYORISTA del día de entrega; si falta
        el precio de algún item no se crea la orden.
        """
        if data.punto_de_venta_id is not None:
            punto = self.repository.get_punto_de_venta(data.punto_de_venta_id)
            if not punto or not punto.activo:
                raise HTTPException(status_code=404, detail="Punto de venta no encontrado")

        try:
            order_data = data.model_dump()
            order_data["order_type"] = "mayorista"

            if order_data["total"] is None:
                sub_total, _, missing = PriceService(self.db).price_items(
                    order_data["items"], "mayorista", data.payment_method, data.delivery_day
                )
                if missing:
                    raise HTTPException(
                        status_code=400,
                        detail=f"Sin precio mayorista para: {', '.join(missing)}"
                    )
                order_data["sub_total"] = sub_total
                order_data["total"] = sub_total + data.shipping_price
            else:
                order_data["sub_total"] = max(order_data["total"] - data.shipping_price, 0)

            if order_data.get("delivery_area") and order_data["delivery_area"].get("schedule"):
                order_data["delivery_area"]["schedule"] = normalize_schedule_time(
                    order_data["delivery_area"]["schedule"]
                )
            order_data["buyer_email"] = order_data["buyer"].get("email") or None

            persona = self._persona_data(order_data["buyer"], order_data["address"])
            if persona["name"]:
                self.repository.upsert_mayorista_persona(persona, commit=False)

            order = self.repository.create(order_data)
            logger.info(f"Orden mayorista creada: {order.id} (punto de venta {order.punto_de_venta_id})")

            return OrderDetailResponse(
                success=True,
                message="Orden mayorista creada exitosamente",
                order=OrderResponse.model_validate(order)
            )
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creando orden mayorista: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error creando orden mayorista: {str(e)}")

    async def search_mayorista_personas(self, term: Optional[str]) -> MayoristaPersonaSearchResponse:
        """Compradores mayoristas guardados, para autocompletar"""
        if not term or len(term.strip()) < MIN_SEARCH_LENGTH:
            return MayoristaPersonaSearchResponse(success=True, message="Término muy corto", personas=[])
        personas = self.repository.search_mayorista_personas(term.strip(), SEARCH_LIMIT)
        return MayoristaPersonaSearchResponse(
            success=True,
            message=f"{len(personas)} compradores",
            personas=[MayoristaPersonaResponse.model_validate(p) for p in personas]
        )

    # ===== ESTADO DE ENVÍO Y WHATSAPP =====

    async def update_estado_envio(self, order_id: int, data: EstadoEnvioUpdate) -> OrderDetailResponse:
        order = self._get_or_404(order_id)
        order = self.repository.update(order, {"estado_envio": data.estado_envio})
        logger.info(f"Estado de envío de orden {order_id}: {data.estado_envio}")
        return OrderDetailResponse(
            success=True,
            message="Estado de envío actualizado",
            order=OrderResponse.model_validate(order)
        )

    async def set_whatsapp_contacted(self, emails: List[str], contacted: bool) -> dict:
        try:
            normalized = [e.strip().lower() for e in emails if e and e.strip()]
            updated = self.repository.set_whatsapp_contacted(
                normalized, utcnow() if contacted else None
            )
            return {
                "success": True,
                "message": f"{updated} órdenes {'marcadas' if contacted else 'desmarcadas'}",
                "updated_count": updated
            }
        except Exception as e:
            logger.error(f"Error marcando contacto por WhatsApp: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error marcando contacto por WhatsApp: {str(e)}")
