from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from datetime import datetime

from app.shared.database.models import Order, ClientStatus

class ClientRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_active_orders(self) -> List[Order]:
        """Órdenes no canceladas con email de comprador"""
        return self.db.query(Order).filter(
            Order.status != "cancelled",
            Order.buyer_email.isnot(None),
            Order.buyer_email != ""
        ).order_by(Order.created_at).all()

    def get_statuses(self, emails: Optional[List[str]] = None) -> Dict[str, ClientStatus]:
        query = self.db.query(ClientStatus)
        if emails is not None:
            query = query.filter(ClientStatus.email.in_(emails))
        return {status.email: status for status in query.all()}

    def _get_or_create(self, email: str) -> ClientStatus:
        status = self.db.query(ClientStatus).filter(ClientStatus.email == email).first()
        if not status:
            status = ClientStatus(email=email, is_hidden=False)
            self.db.add(status)
        return status

    def set_hidden(self, emails: List[str], hidden: bool) -> int:
        for email in emails:
            self._get_or_create(email).is_hidden = hidden
        self.db.commit()
        return len(emails)

    def set_whatsapp_contacted(self, emails: List[str], contacted_at: Optional[datetime]) -> int:
        for email in emails:
            self._get_or_create(email).whatsapp_contacted_at = contacted_at
        self.db.commit()
        return len(emails)
