from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
from datetime import date
import logging

from app.shared.database.models import Price, ProductoGestor
from app.shared.utils.dates import today_local
from .calculator import (
    PriceLookupError, item_lookup_keys, item_quantity, parse_formatted_product, price_type_for
)
from .repository import PriceRepository
from .schemas import (
    PriceCreate, PriceUpdate, PriceFilters, PriceResponse, PriceDetailResponse,
    PriceListResponse, PriceStats, PriceStatsResponse, InitializePeriodResponse,
    ProductoGestorCreate, ProductoGestorUpdate, ProductoGestorResponse,
    ProductoGestorDetailResponse, ProductoGestorListResponse,
    PriceCalculationRequest, PriceCalculationResponse, OrderTotalRequest, OrderTotalResponse, ItemPrice
)

logger = logging.getLogger(__name__)

RECENT_CHANGES_LIMIT = 10


def price_key(price: Price) -> tuple:
    return (price.section, price.product, price.weight, price.price_type)


def latest_per_key(prices: List[Price]) -> List[Price]:
    """Primer precio de cada clave; se asume la lista ordenada del más nuevo al más viejo"""
    latest = {}
    for price in prices:
        latest.setdefault(price_key(price), price)
    return sorted(latest.values(), key=lambda p: (p.section, p.product, p.weight or "", p.price_type))


class PriceService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = PriceRepository(db)

    def _get_or_404(self, price_id: int) -> Price:
        price = self.repository.get_by_id(price_id)
        if not price:
            raise HTTPException(status_code=404, detail="Precio no encontrado")
        return price

    # ===== PRECIOS =====

    async def list_prices(self, filters: PriceFilters) -> PriceListResponse:
        try:
            prices = self.repository.find_prices(filters)
            return PriceListResponse(
                success=True,
                message=f"{len(prices)} precios",
                prices=[PriceResponse.model_validate(p) for p in prices],
                total=len(prices)
            )
        except Exception as e:
            logger.error(f"Error obteniendo precios: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo precios: {str(e)}")

    def _register_product(self, section: str, product: str, weight: Optional[str], price_type: str) -> None:
        """Alta en el catálogo o agregado del tipo de precio faltante (sin commit)"""
        producto = self.repository.get_producto_by_key(section, product, weight)
        if not producto:
            self.repository.create_producto({
                "section": section,
                "product": product,
                "weight": weight,
                "price_types": [price_type],
                "is_active": True,
                "order": self.repository.next_producto_order()
            }, commit=False)
            logger.info(f"Producto agregado al catálogo: {section} {product} {weight or ''}")
        elif price_type not in (producto.price_types or []):
            producto.price_types = list(producto.price_types or []) + [price_type]

    async def create_price(self, data: PriceCreate) -> PriceDetailResponse:
        try:
            effective_date = data.effective_date or today_local()
            price = self.repository.create({
                "section": data.section,
                "product": data.product,
                "weight": data.weight,
                "price_type": data.price_type,
                "price": data.price,
                "is_active": data.is_active,
                "effective_date": effective_date,
                "month": effective_date.month,
                "year": effective_date.year
            }, commit=False)
            self._register_product(data.section, data.product, data.weight, data.price_type)
            self.repository.commit()
            self.db.refresh(price)

            logger.info(f"Precio creado: {data.section} {data.product} {data.price_type} = {data.price}")
            return PriceDetailResponse(success=True, message="Precio creado", price=PriceResponse.model_validate(price))
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creando precio: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error creando precio: {str(e)}")

    async def update_price(self, price_id: int, data: PriceUpdate) -> PriceDetailResponse:
        price = self._get_or_404(price_id)
        price = self.repository.update(price, data.model_dump(exclude_unset=True))
        return PriceDetailResponse(success=True, message="Precio actualizado", price=PriceResponse.model_validate(price))

    async def delete_price(self, price_id: int) -> dict:
        price = self._get_or_404(price_id)
        self.repository.delete(price)
        return {"success": True, "message": "Precio eliminado"}

    async def get_price_history(
        self, section: str, product: str, weight: Optional[str], price_type: str
    ) -> PriceListResponse:
        prices = self.repository.get_history(section, product.strip().upper(), weight or None, price_type)
        return PriceListResponse(
            success=True,
            message=f"{len(prices)} registros",
            prices=[PriceResponse.model_validate(p) for p in prices],
            total=len(prices)
        )

    async def get_current_prices(self) -> PriceListResponse:
        """El último precio activo vigente de cada producto y tipo"""
        prices = latest_per_key(self.repository.get_effective_until(today_local()))
        return PriceListResponse(
            success=True,
            message=f"{len(prices)} precios vigentes",
            prices=[PriceResponse.model_validate(p) for p in prices],
            total=len(prices)
        )

    async def get_prices_by_month(self, month: int, year: int) -> PriceListResponse:
        prices = self.repository.get_in_period(month, year)
        return PriceListResponse(
            success=True,
            message=f"{len(prices)} precios para {month}/{year}",
            prices=[PriceResponse.model_validate(p) for p in prices],
            total=len(prices)
        )

    async def get_price_stats(self) -> PriceStatsResponse:
        try:
            active = self.repository.get_active()
            by_section, by_type, sums = {}, {}, {}
            for price in active:
                by_section[price.section] = by_section.get(price.section, 0) + 1
                by_type[price.price_type] = by_type.get(price.price_type, 0) + 1
                sums[price.section] = sums.get(price.section, 0) + price.price

            today = today_local()
            stats = PriceStats(
                total_prices=len(active),
                prices_by_section=by_section,
                prices_by_type=by_type,
                average_price_by_section={
                    section: round(total / by_section[section], 2) for section, total in sums.items()
                },
                price_changes_this_month=self.repository.count_in_period(today.month, today.year),
                most_recent_changes=[
                    PriceResponse.model_validate(p) for p in self.repository.get_recent(RECENT_CHANGES_LIMIT)
                ]
            )
            return PriceStatsResponse(success=True, message="Estadísticas de precios", stats=stats)
        except Exception as e:
            logger.error(f"Error obteniendo estadísticas de precios: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo estadísticas de precios: {str(e)}")

    async def initialize_period(self, month: int, year: int) -> InitializePeriodResponse:
        """
        Copia al primer día del período el último precio conocido de cada
        producto del catálogo y tipo de precio. Las claves que ya tienen
        precio en el período no se tocan; sin precio previo se usa 0.
        """
        try:
            period_start = date(year, month, 1)
            created = skipped = 0
            for producto in self.repository.get_productos():
                if not producto.is_active:
                    continue
                for price_type in producto.price_types or []:
                    key = (producto.section, producto.product, producto.weight, price_type)
                    if self.repository.exists_in_period(*key, month, year):
                        skipped += 1
                        continue
                    previous = self.repository.get_latest_before(*key, period_start)
                    self.repository.create({
                        "section": producto.section,
                        "product": producto.product,
                        "weight": producto.weight,
                        "price_type": price_type,
                        "price": previous.price if previous else 0,
                        "is_active": True,
                        "effective_date": period_start,
                        "month": month,
                        "year": year
                    }, commit=False)
                    created += 1
            self.repository.commit()

            logger.info(f"Período {month}/{year} inicializado: {created} creados, {skipped} existentes")
            return InitializePeriodResponse(
                success=True,
                message=f"{created} precios inicializados para {month}/{year}",
                month=month,
                year=year,
                created=created,
                skipped=skipped
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error inicializando período {month}/{year}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error inicializando período: {str(e)}")

    # ===== CÁLCULO DE PRECIOS =====

    def find_price(
        self,
        section: str,
        product: str,
        weight: Optional[str],
        order_type: str,
        payment_method: Optional[str],
        day: date
    ) -> Price:
        """Precio vigente al día para el tipo de cliente y medio de pago"""
        if section == "RAW" and order_type != "mayorista":
            raise PriceLookupError("Los productos RAW solo están disponibles para mayoristas")

        price_type = price_type_for(order_type, payment_method)
        price = self.repository.find_effective_price(section, product, weight, price_type, day)
        if not price:
            # Sin el peso exacto vale cualquier peso del producto
            price = self.repository.find_effective_price(
                section, product, weight, price_type, day, match_weight=False
            )
        if not price:
            label = f"{section} - {product}" + (f" - {weight}" if weight else "")
            raise PriceLookupError(f"No se encontró precio para {label} ({price_type})")
        return price

    def price_items(
        self,
        items: List[dict],
        order_type: str,
        payment_method: Optional[str],
        day: Optional[date] = None
    ) -> Tuple[float, List[ItemPrice], List[str]]:
        """
        Total de los items con los precios vigentes.

        Los items sin precio no cortan el cálculo: quedan en la lista de
        faltantes y no suman.
        """
        day = day or today_local()
        total = 0.0
        item_prices, missing = [], []

        for item in items:
            label = item.get("full_name") or item.get("name")
            price, weight = None, None
            errors = []
            for section, product, weight in item_lookup_keys(item):
                try:
                    price = self.find_price(section, product, weight, order_type, payment_method, day)
                    break
                except PriceLookupError as e:
                    errors.append(str(e))
            if price is None:
                logger.warning(f"Sin precio para '{label}': {'; '.join(errors)}")
                missing.append(label)
                continue

            quantity = item_quantity(item)
            subtotal = price.price * quantity
            total += subtotal
            item_prices.append(ItemPrice(
                name=label,
                weight=weight or "N/A",
                unit_price=price.price,
                quantity=quantity,
                subtotal=subtotal
            ))
        return total, item_prices, missing

    async def calculate_price(self, request: PriceCalculationRequest) -> PriceCalculationResponse:
        try:
            section, product, weight = parse_formatted_product(request.product)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        try:
            price = self.find_price(
                section, product, weight, request.order_type, request.payment_method,
                request.delivery_day or today_local()
            )
        except PriceLookupError as e:
            raise HTTPException(status_code=404, detail=str(e))

        return PriceCalculationResponse(
            success=True,
            message="Precio encontrado",
            section=section,
            product=product,
            weight=weight,
            price_type=price.price_type,
            price=price.price
        )

    async def calculate_order_total(self, request: OrderTotalRequest) -> OrderTotalResponse:
        try:
            total, item_prices, missing = self.price_items(
                [item.model_dump() for item in request.items],
                request.order_type,
                request.payment_method,
                request.delivery_day
            )
            return OrderTotalResponse(
                success=True,
                message=f"Total calculado con {len(item_prices)} de {len(request.items)} items",
                total=total,
                item_prices=item_prices,
                missing=missing
            )
        except Exception as e:
            logger.error(f"Error calculando total de la orden: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error calculando total de la orden: {str(e)}")

    # ===== PRODUCTOS GESTOR =====

    def _get_producto_or_404(self, producto_id: int) -> ProductoGestor:
        producto = self.repository.get_producto(producto_id)
        if not producto:
            raise HTTPException(status_code=404, detail="Producto no encontrado")
        return producto

    async def list_productos(self) -> ProductoGestorListResponse:
        productos = self.repository.get_productos()
        return ProductoGestorListResponse(
            success=True,
            message=f"{len(productos)} productos",
            productos=[ProductoGestorResponse.model_validate(p) for p in productos],
            total=len(productos)
        )

    async def create_producto(self, data: ProductoGestorCreate) -> ProductoGestorDetailResponse:
        if self.repository.get_producto_by_key(data.section, data.product, data.weight):
            raise HTTPException(status_code=409, detail="El producto ya existe en el catálogo")
        values = data.model_dump()
        if values["order"] is None:
            values["order"] = self.repository.next_producto_order()
        producto = self.repository.create_producto(values)
        return ProductoGestorDetailResponse(
            success=True, message="Producto creado", producto=ProductoGestorResponse.model_validate(producto)
        )

    async def update_producto(self, producto_id: int, data: ProductoGestorUpdate) -> ProductoGestorDetailResponse:
        producto = self._get_producto_or_404(producto_id)
        values = data.model_dump(exclude_unset=True)

        section = values.get("section", producto.section)
        product = values.get("product", producto.product)
        weight = values.get("weight", producto.weight)
        existing = self.repository.get_producto_by_key(section, product, weight)
        if existing and existing.id != producto.id:
            raise HTTPException(status_code=409, detail="Ya existe otro producto con esa sección, nombre y peso")

        producto = self.repository.update_producto(producto, values)
        return ProductoGestorDetailResponse(
            success=True, message="Producto actualizado", producto=ProductoGestorResponse.model_validate(producto)
        )

    async def delete_producto(self, producto_id: int) -> dict:
        """Elimina el producto del catálogo junto con todos sus precios"""
        producto = self._get_producto_or_404(producto_id)
        try:
            deleted = self.repository.delete_product_prices(producto.section, producto.product, producto.weight)
            self.repository.delete_producto(producto)
            logger.info(f"Producto {producto_id} eliminado con {deleted} precios")
            return {"success": True, "message": "Producto eliminado", "deleted_prices": deleted}
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error eliminando producto {producto_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error eliminando producto: {str(e)}")
