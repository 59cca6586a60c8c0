from sqlalchemy.orm import Session
from sqlalchemy import and_, func, desc
from typing import List, Optional
from datetime import datetime

from app.shared.database.models import Order, PuntoEnvio, Stock, OrderPriority

class ExpressRepository:
    def __init__(self, db: Session):
        self.db = db

    # ===== PUNTOS DE ENVÍO =====

    def get_puntos_envio(self) -> List[PuntoEnvio]:
        return self.db.query(PuntoEnvio).order_by(desc(PuntoEnvio.created_at), desc(PuntoEnvio.id)).all()

    def get_punto_envio(self, punto_id: int) -> Optional[PuntoEnvio]:
        return self.db.query(PuntoEnvio).filter(PuntoEnvio.id == punto_id).first()

    def get_punto_envio_by_name(self, nombre: str) -> Optional[PuntoEnvio]:
        """Búsqueda sin distinguir mayúsculas"""
        return self.db.query(PuntoEnvio).filter(
            func.lower(PuntoEnvio.nombre) == nombre.strip().lower()
        ).first()

    def create_punto_envio(self, data: dict) -> PuntoEnvio:
        punto = PuntoEnvio(**data)
        self.db.add(punto)
        self.db.commit()
        self.db.refresh(punto)
        return punto

    def update_punto_envio(self, punto: PuntoEnvio, data: dict) -> PuntoEnvio:
        for key, value in data.items():
            setattr(punto, key, value)
        self.db.commit()
        self.db.refresh(punto)
        return punto

    def delete_punto_envio(self, punto: PuntoEnvio) -> None:
        self.db.delete(punto)
        self.db.commit()

    # ===== STOCK =====

    def get_stock(self, stock_id: int) -> Optional[Stock]:
        return self.db.query(Stock).filter(Stock.id == stock_id).first()

    def get_stock_by_punto(self, punto_envio: str, fecha: Optional[str] = None) -> List[Stock]:
        query = self.db.query(Stock).filter(Stock.punto_envio == punto_envio)
        if fecha:
            query = query.filter(Stock.fecha == fecha)
        return query.order_by(desc(Stock.fecha), Stock.producto, Stock.id).all()

    def stock_exists(self, punto_envio: str, producto: str, peso: Optional[str], fecha: str) -> bool:
        query = self.db.query(Stock).filter(
            and_(
                Stock.punto_envio == punto_envio,
                Stock.producto == producto,
                Stock.fecha == fecha
            )
        )
        query = query.filter(Stock.peso.is_(None) if peso is None else Stock.peso == peso)
        return query.first() is not None

    def create_stock(self, data: dict, commit: bool = True) -> Stock:
        stock = Stock(**data)
        self.db.add(stock)
        if commit:
            self.db.commit()
            self.db.refresh(stock)
        else:
            self.db.flush()
        return stock

    def update_stock(self, stock: Stock, data: dict) -> Stock:
        for key, value in data.items():
            setattr(stock, key, value)
        self.db.commit()
        self.db.refresh(stock)
        return stock

    def delete_stock(self, stock: Stock) -> None:
        self.db.delete(stock)
        self.db.commit()

    def commit(self) -> None:
        self.db.commit()

    # ===== PRIORIDAD =====

    def get_priority(self, fecha: str, punto_envio: str) -> Optional[OrderPriority]:
        return self.db.query(OrderPriority).filter(
            and_(OrderPriority.fecha == fecha, OrderPriority.punto_envio == punto_envio)
        ).first()

    def save_priority(self, fecha: str, punto_envio: str, order_ids: List[int]) -> OrderPriority:
        """Upsert por (fecha, punto)"""
        priority = self.get_priority(fecha, punto_envio)
        if priority:
            priority.order_ids = list(order_ids)
        else:
            priority = OrderPriority(fecha=fecha, punto_envio=punto_envio, order_ids=list(order_ids))
            self.db.add(priority)
        self.db.commit()
        self.db.refresh(priority)
        return priority

    # ===== ÓRDENES =====

    def count_orders_created_between(self, punto_envio: str, start: datetime, end: datetime) -> int:
        return self.db.query(func.count(Order.id)).filter(
            and_(
                Order.punto_envio == punto_envio,
                Order.created_at >= start,
                Order.created_at < end
            )
        ).scalar() or 0
