from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, asc, desc
from typing import List, Optional
from datetime import date, datetime

from app.shared.database.models import Mayorista, MayoristaPersona, Order

EXPRESS_PAYMENT_METHODS = ("transfer", "bank-transfer")

class OrderRepository:
    def __init__(self, db: Session):
        self.db = db

    # ===== CONSULTAS =====

    def get_by_id(self, order_id: int) -> Optional[Order]:
        return self.db.query(Order).filter(Order.id == order_id).first()

    def _table_query(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        order_type: str = "all"
    ):
        """Órdenes de la tabla: sin express, por día de entrega y tipo"""
        query = self.db.query(Order).filter(
            or_(Order.payment_method.is_(None), Order.payment_method.notin_(EXPRESS_PAYMENT_METHODS)),
            Order.same_day_delivery.isnot(True)
        )

        if date_from:
            query = query.filter(Order.delivery_day >= date_from)
        if date_to:
            query = query.filter(Order.delivery_day <= date_to)

        if order_type == "mayorista":
            query = query.filter(Order.order_type == "mayorista")
        elif order_type == "minorista":
            # Las órdenes viejas no tienen tipo: cuentan como minoristas
            query = query.filter(or_(Order.order_type == "minorista", Order.order_type.is_(None)))
        return query

    def find_orders(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        order_type: str = "all",
        sort_by: str = "created_at",
        sort_desc: bool = True,
        offset: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[Order]:
        """Órdenes de la tabla ordenadas por `sort_by`; los valores vacíos van al final"""
        column = getattr(Order, sort_by)
        direction = desc if sort_desc else asc
        query = self._table_query(date_from, date_to, order_type).order_by(
            column.is_(None), direction(column), direction(Order.id)
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_orders(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        order_type: str = "all"
    ) -> int:
        return self._table_query(date_from, date_to, order_type).count()

    def find_by_emails(self, emails: List[str]) -> List[Order]:
        return self.db.query(Order).filter(Order.buyer_email.in_(emails)).all()

    def find_created_between(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Order]:
        query = self.db.query(Order)
        if start:
            query = query.filter(Order.created_at >= start)
        if end:
            query = query.filter(Order.created_at < end)
        return query.order_by(Order.created_at).all()

    def find_for_express(
        self,
        day_from: Optional[date] = None,
        day_to: Optional[date] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None
    ) -> List[Order]:
        """
        Candidatas a express en un rango: por día de entrega o, si no
        tienen, por fecha de creación (UTC).
        """
        query = self.db.query(Order)
        if day_from is not None:
            query = query.filter(
                or_(
                    and_(Order.delivery_day >= day_from, Order.delivery_day <= day_to),
                    and_(
                        Order.delivery_day.is_(None),
                        Order.created_at >= created_from,
                        Order.created_at < created_to
                    )
                )
            )
        return query.order_by(desc(Order.created_at), desc(Order.id)).all()

    def all_orders(self) -> List[Order]:
        return self.db.query(Order).order_by(Order.created_at).all()

    # ===== MAYORISTAS =====

    def get_punto_de_venta(self, punto_id: int) -> Optional[Mayorista]:
        return self.db.query(Mayorista).filter(Mayorista.id == punto_id).first()

    def search_mayorista_personas(self, term: str, limit: int = 10) -> List[MayoristaPersona]:
        pattern = f"%{term}%"
        return self.db.query(MayoristaPersona).filter(or_(
            MayoristaPersona.name.ilike(pattern),
            MayoristaPersona.last_name.ilike(pattern),
            MayoristaPersona.email.ilike(pattern),
            MayoristaPersona.phone.ilike(pattern)
        )).order_by(MayoristaPersona.name, MayoristaPersona.last_name).limit(limit).all()

    def upsert_mayorista_persona(self, data: dict, commit: bool = True) -> MayoristaPersona:
        """Crea o actualiza por nombre y apellido; los datos vacíos no pisan los guardados"""
        persona = self.db.query(MayoristaPersona).filter(
            MayoristaPersona.name == data["name"],
            MayoristaPersona.last_name == data["last_name"]
        ).first()
        if not persona:
            persona = MayoristaPersona(name=data["name"], last_name=data["last_name"])
            self.db.add(persona)
        for key in ("email", "phone", "address"):
            if data.get(key):
                setattr(persona, key, data[key])
        if commit:
            self.db.commit()
            self.db.refresh(persona)
        else:
            self.db.flush()
        return persona

    # ===== ESCRITURA =====

    def create(self, order_data: dict) -> Order:
        order = Order(**order_data)
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def update(self, order: Order, update_data: dict) -> Order:
        for key, value in update_data.items():
            setattr(order, key, value)
        self.db.commit()
        self.db.refresh(order)
        return order

    def delete(self, order: Order) -> None:
        self.db.delete(order)
        self.db.commit()

    def set_whatsapp_contacted(self, emails: List[str], contacted_at: Optional[datetime]) -> int:
        orders = self.find_by_emails(emails)
        for order in orders:
            order.whatsapp_contacted_at = contacted_at
        self.db.commit()
        return len(orders)
