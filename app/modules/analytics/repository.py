from sqlalchemy.orm import Session
from sqlalchemy import and_, or_
from typing import List, Optional
from datetime import date, timedelta

from app.shared.database.models import Order
from app.shared.utils.dates import local_day_bounds_utc

class AnalyticsRepository:
    def __init__(self, db: Session):
        self.db = db

    def orders_created_in(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[str] = None
    ) -> List[Order]:
        """Órdenes creadas entre dos días locales (inclusive)"""
        query = self.db.query(Order)
        if start_date:
            query = query.filter(Order.created_at >= local_day_bounds_utc(start_date)[0])
        if end_date:
            query = query.filter(Order.created_at < local_day_bounds_utc(end_date)[1])
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(Order.created_at).all()

    def orders_near_days(self, start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[Order]:
        """
        Candidatas para filtrar por fecha efectiva (día de entrega o creación).
        Se amplía un día el rango de creación; el filtro exacto se hace en el servicio.
        """
        query = self.db.query(Order)
        if start_date or end_date:
            delivery_conditions = []
            created_conditions = [Order.delivery_day.is_(None)]
            if start_date:
                delivery_conditions.append(Order.delivery_day >= start_date)
                created_conditions.append(Order.created_at >= local_day_bounds_utc(start_date - timedelta(days=1))[0])
            if end_date:
                delivery_conditions.append(Order.delivery_day <= end_date)
                created_conditions.append(Order.created_at < local_day_bounds_utc(end_date + timedelta(days=1))[1])
            query = query.filter(or_(and_(*delivery_conditions), and_(*created_conditions)))
        return query.order_by(Order.created_at).all()
