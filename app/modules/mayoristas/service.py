from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import calendar
import logging

from app.shared.database.models import Mayorista
from app.shared.schemas.common import page_count
from app.shared.utils.dates import now_local, local_day_bounds_utc
from .repository import MayoristaRepository
from .schemas import (
    ZONAS, MayoristaCreate, MayoristaUpdate, MayoristaContacto, KilosMes,
    MayoristaResponse, MayoristaDetailResponse, MayoristaListResponse,
    PuntosVentaSearchResponse, VentasZona, VentasPorZonaResponse,
    MayoristaEstadistica, MayoristaStatisticsResponse,
    PuntoVentaStats, PuntosVentaStatsResponse, ProductoMatrixRow, ProductosMatrixResponse
)
from .wholesale import (
    build_catalog, order_kilos, frecuencia_compra, matrix_column, matrix_row, sort_matrix_columns
)

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2
SEARCH_LIMIT = 10


def to_response(mayorista: Mayorista) -> MayoristaResponse:
    return MayoristaResponse(
        id=mayorista.id,
        nombre=mayorista.nombre,
        zona=mayorista.zona,
        frecuencia=mayorista.frecuencia,
        fecha_inicio_ventas=mayorista.fecha_inicio_ventas,
        fecha_primer_pedido=mayorista.fecha_primer_pedido,
        fecha_ultimo_pedido=mayorista.fecha_ultimo_pedido,
        tiene_freezer=mayorista.tiene_freezer,
        cantidad_freezers=mayorista.cantidad_freezers,
        capacidad_freezer=mayorista.capacidad_freezer,
        tipos_negocio=mayorista.tipos_negocio or [],
        horarios=mayorista.horarios,
        contacto=MayoristaContacto(
            telefono=mayorista.telefono,
            email=mayorista.email,
            direccion=mayorista.direccion
        ),
        notas=mayorista.notas,
        kilos_por_mes=mayorista.kilos_por_mes or [],
        activo=mayorista.activo,
        created_at=mayorista.created_at,
        updated_at=mayorista.updated_at
    )


def _flatten_contacto(data: dict) -> dict:
    """El contacto se guarda en columnas propias"""
    contacto = data.pop("contacto", None)
    if contacto is not None:
        for key in ("telefono", "email", "direccion"):
            if key in contacto:
                data[key] = contacto[key]
    return data


def upsert_kilos(kilos_por_mes: List[dict], mes: int, anio: int, kilos: float) -> List[dict]:
    """Reemplaza los kilos del mes si ya existen, si no los agrega"""
    result = [dict(k) for k in kilos_por_mes or []]
    for registro in result:
        if registro.get("mes") == mes and registro.get("anio") == anio:
            registro["kilos"] = kilos
            return result
    result.append({"mes": mes, "anio": anio, "kilos": kilos})
    return result


def kilos_del_mes(kilos_por_mes: List[dict], mes: int, anio: int) -> float:
    return sum(
        k.get("kilos") or 0
        for k in kilos_por_mes or []
        if k.get("mes") == mes and k.get("anio") == anio
    )


class MayoristaService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = MayoristaRepository(db)

    def _get_or_404(self, mayorista_id: int) -> Mayorista:
        mayorista = self.repository.get_by_id(mayorista_id)
        if not mayorista:
            raise HTTPException(status_code=404, detail="Mayorista no encontrado")
        return mayorista

    async def list_mayoristas(
        self,
        page_index: int = 0,
        page_size: int = 50,
        search: Optional[str] = None,
        zona: Optional[str] = None,
        activo: bool = True,
        sort_by: str = "nombre",
        sort_desc: bool = False
    ) -> MayoristaListResponse:
        try:
            mayoristas, total = self.repository.find_mayoristas(
                search, zona, activo, sort_by, sort_desc,
                offset=page_index * page_size, limit=page_size
            )
            return MayoristaListResponse(
                success=True,
                message=f"{total} mayoristas encontrados",
                mayoristas=[to_response(m) for m in mayoristas],
                total=total,
                page_count=page_count(total, page_size)
            )
        except Exception as e:
            logger.error(f"Error obteniendo mayoristas: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo mayoristas: {str(e)}")

    async def get_mayorista(self, mayorista_id: int) -> MayoristaDetailResponse:
        mayorista = self._get_or_404(mayorista_id)
        return MayoristaDetailResponse(success=True, message="Mayorista encontrado", mayorista=to_response(mayorista))

    async def create_mayorista(self, data: MayoristaCreate) -> MayoristaDetailResponse:
        try:
            values = _flatten_contacto(data.model_dump())
            values["kilos_por_mes"] = []
            values["activo"] = True
            mayorista = self.repository.create(values)
            logger.info(f"Mayorista creado: {mayorista.nombre} ({mayorista.zona})")
            return MayoristaDetailResponse(success=True, message="Mayorista creado", mayorista=to_response(mayorista))
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creando mayorista: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error creando mayorista: {str(e)}")

    async def update_mayorista(self, mayorista_id: int, data: MayoristaUpdate) -> MayoristaDetailResponse:
        mayorista = self._get_or_404(mayorista_id)
        try:
            values = _flatten_contacto(data.model_dump(exclude_unset=True))
            mayorista = self.repository.update(mayorista, values)
            return MayoristaDetailResponse(success=True, message="Mayorista actualizado", mayorista=to_response(mayorista))
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error actualizando mayorista {mayorista_id}: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error actualizando mayorista: {str(e)}")

    async def delete_mayorista(self, mayorista_id: int) -> dict:
        """Baja lógica: el mayorista queda inactivo"""
        mayorista = self._get_or_404(mayorista_id)
        self.repository.update(mayorista, {"activo": False})
        logger.info(f"Mayorista {mayorista_id} desactivado")
        return {"success": True, "message": "Mayorista eliminado"}

    async def add_kilos_mes(self, mayorista_id: int, registro: KilosMes) -> MayoristaDetailResponse:
        mayorista = self._get_or_404(mayorista_id)
        kilos = upsert_kilos(mayorista.kilos_por_mes, registro.mes, registro.anio, registro.kilos)
        mayorista = self.repository.update(mayorista, {"kilos_por_mes": kilos})
        return MayoristaDetailResponse(
            success=True,
            message=f"Kilos de {registro.mes}/{registro.anio} registrados",
            mayorista=to_response(mayorista)
        )

    # ===== BÚSQUEDA Y ESTADÍSTICAS =====

    async def search_puntos_venta(self, term: Optional[str]) -> PuntosVentaSearchResponse:
        if not term or len(term.strip()) < MIN_SEARCH_LENGTH:
            return PuntosVentaSearchResponse(success=True, message="Término muy corto", puntos_venta=[])
        puntos = self.repository.search_active(term.strip(), SEARCH_LIMIT)
        return PuntosVentaSearchResponse(
            success=True,
            message=f"{len(puntos)} puntos de venta",
            puntos_venta=[to_response(p) for p in puntos]
        )

    async def ventas_por_zona(self) -> VentasPorZonaResponse:
        now = now_local()
        zonas = {}
        for mayorista in self.repository.get_active():
            stats = zonas.setdefault(mayorista.zona, {"total_mayoristas": 0, "total_kilos_ultimo_mes": 0.0})
            stats["total_mayoristas"] += 1
            stats["total_kilos_ultimo_mes"] += kilos_del_mes(mayorista.kilos_por_mes, now.month, now.year)

        ordered = sorted(zonas, key=lambda z: ZONAS.index(z) if z in ZONAS else len(ZONAS))
        return VentasPorZonaResponse(
            success=True,
            message="Ventas por zona del mes actual",
            mes=now.month,
            anio=now.year,
            zonas=[VentasZona(zona=z, **zonas[z]) for z in ordered]
        )

    async def get_statistics(self, anio: Optional[int] = None) -> MayoristaStatisticsResponse:
        """Kilos por mes de cada mayorista activo en un año"""
        anio = anio or now_local().year
        estadisticas = []
        for mayorista in self.repository.get_active():
            meses = [kilos_del_mes(mayorista.kilos_por_mes, mes, anio) for mes in range(1, 13)]
            total = sum(meses)
            con_datos = len([
                k for k in mayorista.kilos_por_mes or [] if k.get("anio") == anio
            ])
            estadisticas.append(MayoristaEstadistica(
                id=mayorista.id,
                nombre=mayorista.nombre,
                zona=mayorista.zona,
                kilos_por_mes=meses,
                total_kilos=round(total, 2),
                promedio_mensual=round(total / con_datos, 2) if con_datos else 0
            ))

        estadisticas.sort(key=lambda e: e.total_kilos, reverse=True)
        return MayoristaStatisticsResponse(
            success=True,
            message=f"Estadísticas {anio}",
            anio=anio,
            mayoristas=estadisticas,
            total_kilos=round(sum(e.total_kilos for e in estadisticas), 2)
        )

    # ===== ESTADÍSTICAS DESDE ÓRDENES =====

    def _created_range(self, date_from: Optional[date], date_to: Optional[date]):
        created_from = local_day_bounds_utc(date_from)[0] if date_from else None
        created_to = local_day_bounds_utc(date_to)[1] if date_to else None
        return created_from, created_to

    async def get_puntos_venta_stats(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> PuntosVentaStatsResponse:
        """
        Kilos, frecuencia de compra y último pedido de cada punto de venta
        activo, calculados desde sus órdenes mayoristas.

        Los kilos salen de asociar cada item al catálogo de precios
        MAYORISTA; solo suman perro, gato y huesos carnosos.
        """
        try:
            catalog = build_catalog(self.repository.get_wholesale_prices())
            created_from, created_to = self._created_range(date_from, date_to)
            orders = self.repository.get_wholesale_orders(created_from, created_to)

            por_punto = {}
            for order in orders:
                por_punto.setdefault(order.punto_de_venta_id, []).append(order)

            stats = []
            for punto in self.repository.get_active():
                pedidos = por_punto.get(punto.id, [])
                kilos = [order_kilos(order, catalog) for order in pedidos]
                total = sum(kilos)
                fechas = [order.created_at for order in pedidos]
                stats.append(PuntoVentaStats(
                    id=punto.id,
                    nombre=punto.nombre,
                    zona=punto.zona,
                    telefono=punto.telefono or "Sin teléfono",
                    kg_totales=int(total + 0.5),
                    frecuencia_compra=frecuencia_compra(fechas),
                    promedio_kg_por_pedido=int(total / len(pedidos) + 0.5) if pedidos else 0,
                    kg_ultima_compra=int(kilos[-1] + 0.5) if kilos else 0,
                    total_pedidos=len(pedidos),
                    fecha_primer_pedido=fechas[0] if fechas else None,
                    fecha_ultimo_pedido=fechas[-1] if fechas else None
                ))

            stats.sort(key=lambda s: (-s.kg_totales, s.nombre))
            return PuntosVentaStatsResponse(
                success=True,
                message=f"{len(stats)} puntos de venta",
                date_from=date_from,
                date_to=date_to,
                stats=stats
            )

        except Exception as e:
            logger.error(f"Error calculando estadísticas de puntos de venta: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error calculando estadísticas: {str(e)}")

    async def get_productos_matrix(
        self,
        anio: Optional[int] = None,
        mes: Optional[int] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None
    ) -> ProductosMatrixResponse:
        """
        Matriz punto de venta x producto para un mes.

        Las columnas salen del último período de precios MAYORISTA hasta el
        mes pedido; sin período se usan todos los precios mayoristas activos.
        """
        now = now_local()
        anio = anio or now.year
        mes = mes or now.month
        if date_from and date_to and date_from > date_to:
            raise HTTPException(status_code=400, detail="date_from no puede ser posterior a date_to")

        try:
            period = self.repository.latest_wholesale_period(mes, anio)
            prices = self.repository.get_wholesale_prices(*period) if period else []
            if not prices:
                prices = self.repository.get_wholesale_prices()
            catalog = build_catalog(prices)
            columns = sort_matrix_columns(matrix_column(p) for p in catalog)

            date_from = date_from or date(anio, mes, 1)
            date_to = date_to or date(anio, mes, calendar.monthrange(anio, mes)[1])
            created_from, created_to = self._created_range(date_from, date_to)

            por_punto = {}
            for order in self.repository.get_wholesale_orders(created_from, created_to):
                por_punto.setdefault(order.punto_de_venta_id, []).append(order)

            matrix = []
            for punto in self.repository.get_all():
                row = matrix_row(por_punto.get(punto.id, []), catalog, columns)
                matrix.append(ProductoMatrixRow(
                    punto_venta_id=punto.id,
                    punto_venta_nombre=punto.nombre,
                    zona=punto.zona,
                    productos={k: round(v, 2) for k, v in row["productos"].items()},
                    total_kilos=round(row["total_kilos"], 2)
                ))

            return ProductosMatrixResponse(
                success=True,
                message=f"Matriz de productos {mes}/{anio}",
                mes=mes,
                anio=anio,
                date_from=date_from,
                date_to=date_to,
                product_names=columns,
                matrix=matrix
            )

        except Exception as e:
            logger.error(f"Error armando la matriz de productos: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error armando la matriz: {str(e)}")
