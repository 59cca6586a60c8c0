from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from app.config.settings import settings
from app.shared.schemas.common import page_count
from app.shared.utils.dates import utcnow
from .repository import ClientRepository
from .segmentation import build_client_profiles, category_stats
from .schemas import (
    BEHAVIOR_CATEGORIES, SPENDING_CATEGORIES,
    ClientProfile, CategoryStats, ClientSummary, ClientAnalyticsResponse,
    ClientContact, ClientsByCategoryResponse, ClientStatusInfo, ClientStatusResponse
)

logger = logging.getLogger(__name__)


def _clean_emails(emails: List[str]) -> List[str]:
    result = []
    for email in emails:
        email = (email or "").strip().lower()
        if email and email not in result:
            result.append(email)
    return result


class ClientService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = ClientRepository(db)

    def get_profiles(self, include_hidden: bool = False) -> List[dict]:
        """Perfiles de todos los clientes con sus marcas de visibilidad y WhatsApp"""
        profiles = build_client_profiles(
            self.repository.get_active_orders(),
            utcnow(),
            settings.client_premium_monthly_spending,
            settings.client_standard_monthly_spending
        )
        statuses = self.repository.get_statuses()
        visible = []
        for profile in profiles:
            status = statuses.get(profile["email"])
            profile["is_hidden"] = bool(status and status.is_hidden)
            profile["whatsapp_contacted_at"] = status.whatsapp_contacted_at if status else None
            if include_hidden or not profile["is_hidden"]:
                visible.append(profile)
        return visible

    # ===== ANALÍTICAS =====

    async def get_analytics(
        self,
        behavior_category: Optional[str] = None,
        spending_category: Optional[str] = None,
        search: Optional[str] = None,
        include_hidden: bool = False,
        page_index: int = 0,
        page_size: int = 50
    ) -> ClientAnalyticsResponse:
        try:
            profiles = self.get_profiles(include_hidden)
            total_clients = len(profiles)

            total_orders = sum(p["total_orders"] for p in profiles)
            total_spent = sum(p["total_spent"] for p in profiles)
            repeat = len([p for p in profiles if p["total_orders"] > 1])
            summary = ClientSummary(
                average_order_value=round(total_spent / total_orders, 2) if total_orders else 0,
                repeat_customer_rate=round(repeat / total_clients * 100, 2) if total_clients else 0,
                average_orders_per_customer=round(total_orders / total_clients, 2) if total_clients else 0,
                average_monthly_spending=round(
                    sum(p["monthly_spending"] for p in profiles) / total_clients, 2
                ) if total_clients else 0
            )

            filtered = profiles
            if behavior_category:
                filtered = [p for p in filtered if p["behavior_category"] == behavior_category]
            if spending_category:
                filtered = [p for p in filtered if p["spending_category"] == spending_category]
            if search and search.strip():
                term = search.strip().lower()
                filtered = [
                    p for p in filtered
                    if term in p["email"] or term in f"{p['name']} {p['last_name']}".lower()
                ]
            filtered.sort(key=lambda p: p["total_spent"], reverse=True)

            start = page_index * page_size
            return ClientAnalyticsResponse(
                success=True,
                message=f"{total_clients} clientes analizados",
                total_clients=total_clients,
                behavior_categories=[
                    CategoryStats(**s) for s in category_stats(profiles, "behavior_category", BEHAVIOR_CATEGORIES)
                ],
                spending_categories=[
                    CategoryStats(**s) for s in category_stats(profiles, "spending_category", SPENDING_CATEGORIES)
                ],
                summary=summary,
                clients=[ClientProfile(**p) for p in filtered[start:start + page_size]],
                total=len(filtered),
                page_count=page_count(len(filtered), page_size)
            )
        except Exception as e:
            logger.error(f"Error obteniendo analíticas de clientes: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error obteniendo analíticas de clientes: {str(e)}")

    def get_clients_by_category(self, category: str, category_type: str) -> List[ClientContact]:
        """Destinatarios de una categoría de comportamiento o de gasto"""
        if category_type == "behavior":
            if category not in BEHAVIOR_CATEGORIES:
                raise HTTPException(status_code=400, detail=f"Categoría de comportamiento inválida: {category}")
            field = "behavior_category"
        elif category_type == "spending":
            if category not in SPENDING_CATEGORIES:
                raise HTTPException(status_code=400, detail=f"Categoría de gasto inválida: {category}")
            field = "spending_category"
        else:
            raise HTTPException(status_code=400, detail=f"Tipo de categoría inválido: {category_type}")

        return [
            ClientContact(email=p["email"], name=f"{p['name']} {p['last_name']}".strip() or p["email"])
            for p in self.get_profiles()
            if p[field] == category
        ]

    async def clients_by_category(self, category: str, category_type: str) -> ClientsByCategoryResponse:
        clients = self.get_clients_by_category(category, category_type)
        return ClientsByCategoryResponse(
            success=True,
            message=f"{len(clients)} clientes en la categoría {category}",
            category=category,
            type=category_type,
            clients=clients,
            total=len(clients)
        )

    # ===== VISIBILIDAD Y WHATSAPP =====

    async def set_hidden(self, emails: List[str], hidden: bool) -> dict:
        try:
            cleaned = _clean_emails(emails)
            count = self.repository.set_hidden(cleaned, hidden)
            logger.info(f"{count} clientes {'ocultados' if hidden else 'visibles'}")
            return {
                "success": True,
                "message": f"{count} clientes {'ocultados' if hidden else 'mostrados'}",
                "updated_count": count
            }
        except Exception as e:
            logger.error(f"Error actualizando visibilidad de clientes: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error actualizando visibilidad de clientes: {str(e)}")

    async def set_whatsapp_contacted(self, emails: List[str], contacted: bool) -> dict:
        try:
            cleaned = _clean_emails(emails)
            count = self.repository.set_whatsapp_contacted(cleaned, utcnow() if contacted else None)
            return {
                "success": True,
                "message": f"{count} clientes {'marcados' if contacted else 'desmarcados'}",
                "updated_count": count
            }
        except Exception as e:
            logger.error(f"Error marcando contacto por WhatsApp: {str(e)}")
            raise HTTPException(status_code=500, detail=f"Error marcando contacto por WhatsApp: {str(e)}")

    async def get_statuses(self, emails: Optional[List[str]] = None) -> ClientStatusResponse:
        """Visibilidad y contacto por WhatsApp; sin emails devuelve todos los registrados"""
        cleaned = _clean_emails(emails) if emails else None
        statuses = self.repository.get_statuses(cleaned)
        keys = cleaned if cleaned is not None else sorted(statuses)
        return ClientStatusResponse(
            success=True,
            message="Estado de clientes",
            statuses=[
                ClientStatusInfo(
                    email=email,
                    is_hidden=bool(statuses.get(email) and statuses[email].is_hidden),
                    whatsapp_contacted_at=statuses[email].whatsapp_contacted_at if email in statuses else None
                )
                for email in keys
            ]
        )
