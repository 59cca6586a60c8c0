# app/modules/clients/segmentation.py
"""
Segmentación de clientes a partir de sus órdenes.

Comportamiento (se evalúa en este orden):
    new               una sola orden, hace 30 días o menos
    lost              última orden hace más de 120 días
    possible-inactive última orden hace 61 a 120 días
    recovered         compró en los últimos 30 días tras más de 60 sin comprar
    active            última orden hace 30 días o menos
    tracking          el resto
Gasto: premium / standard / basic según el gasto mensual promedio.
"""
from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from app.shared.database.models import Order
from app.shared.utils.dates import months_between
from app.shared.utils.products import calculate_item_weight, iter_item_lines, line_quantity

NEW_CLIENT_DAYS = 30
ACTIVE_DAYS = 30
INACTIVE_FROM_DAYS = 61
LOST_AFTER_DAYS = 120
RECOVERY_GAP_DAYS = 60


def categorize_behavior(
    total_orders: int,
    days_since_first: int,
    days_since_last: int,
    last_gap_days: Optional[int] = None
) -> str:
    if total_orders == 1 and days_since_first <= NEW_CLIENT_DAYS:
        return "new"
    if days_since_last > LOST_AFTER_DAYS:
        return "lost"
    if days_since_last >= INACTIVE_FROM_DAYS:
        return "possible-inactive"
    if days_since_last <= ACTIVE_DAYS and last_gap_days is not None and last_gap_days > RECOVERY_GAP_DAYS:
        return "recovered"
    if days_since_last <= ACTIVE_DAYS:
        return "active"
    return "tracking"


def categorize_spending(monthly_spending: float, premium_threshold: float, standard_threshold: float) -> str:
    if monthly_spending >= premium_threshold:
        return "premium"
    if monthly_spending >= standard_threshold:
        return "standard"
    return "basic"


def _order_weight(order: Order) -> float:
    total = 0.0
    for item, option in iter_item_lines(order.items):
        total += calculate_item_weight(item.get("name"), (option or {}).get("name", "")) * line_quantity(item, option)
    return total


def build_client_profiles(
    orders: Iterable[Order],
    now: datetime,
    premium_threshold: float,
    standard_threshold: float
) -> List[dict]:
    """Un perfil por email de comprador, en orden de primera compra"""
    grouped: Dict[str, List[Order]] = OrderedDict()
    for order in orders:
        email = (order.buyer_email or "").strip().lower()
        if email:
            grouped.setdefault(email, []).append(order)

    profiles = []
    for email, client_orders in grouped.items():
        client_orders.sort(key=lambda o: o.created_at)
        first, last = client_orders[0], client_orders[-1]
        total_orders = len(client_orders)
        total_spent = sum(o.total or 0 for o in client_orders)
        total_weight = sum(_order_weight(o) for o in client_orders)
        months = months_between(first.created_at, now)

        last_gap = None
        if total_orders > 1:
            last_gap = (last.created_at - client_orders[-2].created_at).days

        days_since_first = (now - first.created_at).days
        days_since_last = (now - last.created_at).days
        monthly_spending = total_spent / months
        buyer = last.buyer or {}

        profiles.append({
            "email": email,
            "name": buyer.get("name", ""),
            "last_name": buyer.get("lastName", ""),
            "phone": buyer.get("phone") or (last.address or {}).get("phone"),
            "last_address": last.address or None,
            "behavior_category": categorize_behavior(total_orders, days_since_first, days_since_last, last_gap),
            "spending_category": categorize_spending(monthly_spending, premium_threshold, standard_threshold),
            "total_orders": total_orders,
            "total_spent": round(total_spent, 2),
            "total_weight": round(total_weight, 2),
            "monthly_spending": round(monthly_spending, 2),
            "monthly_weight": round(total_weight / months, 2),
            "first_order_date": first.created_at,
            "last_order_date": last.created_at,
            "days_since_first_order": days_since_first,
            "days_since_last_order": days_since_last,
            "average_order_value": round(total_spent / total_orders, 2),
        })
    return profiles


def category_stats(profiles: List[dict], field: str, categories) -> List[dict]:
    total_clients = len(profiles)
    stats = []
    for category in categories:
        members = [p for p in profiles if p[field] == category]
        spent = sum(p["total_spent"] for p in members)
        stats.append({
            "category": category,
            "count": len(members),
            "total_spent": round(spent, 2),
            "average_spending": round(spent / len(members), 2) if members else 0,
            "percentage": round(len(members) / total_clients * 100, 2) if total_clients else 0,
        })
    return stats
