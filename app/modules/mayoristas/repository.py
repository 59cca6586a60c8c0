from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, asc, desc
from typing import List, Optional, Tuple
from datetime import date, datetime
import re

from app.shared.database.models import Mayorista, Order, Price

SORTABLE_FIELDS = {
    "nombre": Mayorista.nombre,
    "zona": Mayorista.zona,
    "frecuencia": Mayorista.frecuencia,
    "fecha_inicio_ventas": Mayorista.fecha_inicio_ventas,
    "fecha_ultimo_pedido": Mayorista.fecha_ultimo_pedido,
    "created_at": Mayorista.created_at,
}

class MayoristaRepository:
    def __init__(self, db: Session):
        self.db = db

    def find_mayoristas(
        self,
        search: Optional[str] = None,
        zona: Optional[str] = None,
        activo: bool = True,
        sort_by: str = "nombre",
        sort_desc: bool = False,
        offset: int = 0,
        limit: int = 50
    ) -> Tuple[List[Mayorista], int]:
        query = self.db.query(Mayorista).filter(Mayorista.activo == activo)

        if zona:
            query = query.filter(Mayorista.zona == zona)

        if search and search.strip():
            term = search.strip()
            # "la plata" también encuentra LA_PLATA
            zona_term = re.sub(r"\s+", "_", term)
            query = query.filter(
                or_(
                    Mayorista.nombre.ilike(f"%{term}%"),
                    Mayorista.telefono.ilike(f"%{term}%"),
                    Mayorista.email.ilike(f"%{term}%"),
                    Mayorista.zona.ilike(f"%{zona_term}%")
                )
            )

        total = query.count()
        column = SORTABLE_FIELDS.get(sort_by, Mayorista.nombre)
        order = desc(column) if sort_desc else asc(column)
        mayoristas = query.order_by(order, Mayorista.id).offset(offset).limit(limit).all()
        return mayoristas, total

    def get_by_id(self, mayorista_id: int) -> Optional[Mayorista]:
        return self.db.query(Mayorista).filter(Mayorista.id == mayorista_id).first()

    def get_active(self) -> List[Mayorista]:
        return self.db.query(Mayorista).filter(Mayorista.activo == True).order_by(Mayorista.nombre).all()

    def search_active(self, term: str, limit: int = 10) -> List[Mayorista]:
        return self.db.query(Mayorista).filter(
            Mayorista.activo == True,
            or_(
                Mayorista.nombre.ilike(f"%{term}%"),
                Mayorista.telefono.ilike(f"%{term}%"),
                Mayorista.direccion.ilike(f"%{term}%")
            )
        ).order_by(Mayorista.nombre).limit(limit).all()

    def create(self, data: dict) -> Mayorista:
        mayorista = Mayorista(**data)
        self.db.add(mayorista)
        self.db.commit()
        self.db.refresh(mayorista)
        return mayorista

    def update(self, mayorista: Mayorista, data: dict) -> Mayorista:
        for key, value in data.items():
            setattr(mayorista, key, value)
        self.db.commit()
        self.db.refresh(mayorista)
        return mayorista

    def get_all(self) -> List[Mayorista]:
        return self.db.query(Mayorista).order_by(Mayorista.nombre, Mayorista.id).all()

    # ===== ÓRDENES Y PRECIOS MAYORISTAS =====

    def get_wholesale_orders(
        self,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        delivery_from: Optional[date] = None,
        delivery_to: Optional[date] = None
    ) -> List[Order]:
        """Órdenes mayoristas con punto de venta, de la más vieja a la más nueva"""
        query = self.db.query(Order).filter(
            Order.order_type == "mayorista",
            Order.punto_de_venta_id.isnot(None)
        )
        if created_from:
            query = query.filter(Order.created_at >= created_from)
        if created_to:
            query = query.filter(Order.created_at < created_to)
        if delivery_from:
            query = query.filter(Order.delivery_day >= delivery_from)
        if delivery_to:
            query = query.filter(Order.delivery_day <= delivery_to)
        return query.order_by(Order.created_at, Order.id).all()

    def get_wholesale_prices(self, month: Optional[int] = None, year: Optional[int] = None) -> List[Price]:
        query = self.db.query(Price).filter(Price.price_type == "MAYORISTA", Price.is_active == True)
        if month is not None and year is not None:
            query = query.filter(Price.month == month, Price.year == year)
        return query.order_by(desc(Price.effective_date), desc(Price.created_at), desc(Price.id)).all()

    def latest_wholesale_period(self, month: int, year: int) -> Optional[Tuple[int, int]]:
        """Último período con precios mayoristas hasta (month, year)"""
        row = self.db.query(Price.year, Price.month).filter(
            Price.price_type == "MAYORISTA",
            Price.is_active == True,
            or_(Price.year < year, and_(Price.year == year, Price.month <= month))
        ).order_by(desc(Price.year), desc(Price.month)).first()
        return (row[1], row[0]) if row else None
