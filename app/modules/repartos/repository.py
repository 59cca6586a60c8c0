from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import List, Optional

from app.shared.database.models import RepartoWeek

class RepartoRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> List[RepartoWeek]:
        """Todas las semanas, la más recientemente editada primero"""
        return self.db.query(RepartoWeek).order_by(desc(RepartoWeek.updated_at), desc(RepartoWeek.id)).all()

    def get_latest(self, week_key: str) -> Optional[RepartoWeek]:
        return self.db.query(RepartoWeek).filter(
            RepartoWeek.week_key == week_key
        ).order_by(desc(RepartoWeek.updated_at), desc(RepartoWeek.id)).first()

    def create(self, week_key: str, data: dict) -> RepartoWeek:
        week = RepartoWeek(week_key=week_key, data=data)
        self.db.add(week)
        self.db.commit()
        self.db.refresh(week)
        return week

    def update_data(self, week: RepartoWeek, data: dict) -> RepartoWeek:
        # se reasigna el dict completo para que el cambio en la columna JSON se detecte
        week.data = data
        self.db.commit()
        self.db.refresh(week)
        return week

    def delete_duplicates(self, week_key: str, keep_id: int) -> int:
        count = self.db.query(RepartoWeek).filter(
            RepartoWeek.week_key == week_key,
            RepartoWeek.id != keep_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return count

    def delete_week(self, week_key: str) -> int:
        count = self.db.query(RepartoWeek).filter(
            RepartoWeek.week_key == week_key
        ).delete(synchronize_session=False)
        self.db.commit()
        return count

    def delete_older_than(self, week_key: str) -> int:
        """Las claves YYYY-MM-DD se comparan como texto"""
        count = self.db.query(RepartoWeek).filter(
            RepartoWeek.week_key < week_key
        ).delete(synchronize_session=False)
        self.db.commit()
        return count
