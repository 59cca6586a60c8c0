# app/shared/utils/dates.py
"""
Utilidades de fechas del negocio.

Las fechas se guardan en UTC sin zona (naive). Los cálculos de "hoy",
cortes de pedidos y agrupaciones por día se hacen en la zona horaria
configurada (Argentina por defecto).
"""
from datetime import datetime, date, timedelta, timezone
from typing import List, Optional, Tuple, Union

from dateutil import parser as date_parser
from dateutil import tz
from dateutil.relativedelta import relativedelta

from app.config.settings import settings

DateLike = Union[date, datetime, str]


def utcnow() -> datetime:
    """Ahora en UTC, sin tzinfo (formato de almacenamiento)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: datetime) -> datetime:
    """Datetime con zona a UTC naive; los naive se asumen ya en UTC"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def business_tz():
    return tz.gettz(settings.timezone)


def now_local() -> datetime:
    return datetime.now(business_tz())


def today_local() -> date:
    return now_local().date()


def to_local(value: datetime) -> datetime:
    """Convertir un datetime almacenado (UTC naive) a la zona del negocio"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(business_tz())


def local_date(value: datetime) -> date:
    return to_local(value).date()


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Normalizar una fecha de entrada a `date`.

    Acepta `date`, `datetime` o strings ISO (`2024-05-10`,
    `2024-05-10T03:00:00.000Z`) y también `10/05/2024`.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if "/" in text:
            return date_parser.parse(text, dayfirst=True).date()
        # Solo la parte de fecha: evita corrimientos por zona horaria
        return date_parser.isoparse(text[:10]).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Fecha inválida: {value}") from e


def local_day_bounds_utc(day: date) -> Tuple[datetime, datetime]:
    """Inicio (inclusive) y fin (exclusivo) de un día local expresados en UTC naive"""
    start_local = datetime(day.year, day.month, day.day, tzinfo=business_tz())
    end_local = start_local + timedelta(days=1)
    return (
        start_local.astimezone(timezone.utc).replace(tzinfo=None),
        end_local.astimezone(timezone.utc).replace(tzinfo=None),
    )


def format_day(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")


# ===== SEMANAS (REPARTOS) =====

def get_week_key(value: date) -> str:
    """Clave de la semana: el lunes en formato YYYY-MM-DD"""
    monday = value - timedelta(days=value.weekday())
    return format_day(monday)


def get_weeks_of_month(year: int, month: int) -> List[dict]:
    """Semanas (lunes a domingo) que tocan el mes"""
    first_day = date(year, month, 1)
    last_day = first_day + relativedelta(months=1) - timedelta(days=1)

    current = first_day - timedelta(days=first_day.weekday())
    last_sunday = last_day + timedelta(days=6 - last_day.weekday())

    weeks = []
    while current <= last_sunday:
        weeks.append({
            "week_key": format_day(current),
            "start_date": current,
            "end_date": current + timedelta(days=6),
        })
        current += timedelta(days=7)
    return weeks


def next_working_day(value: date) -> date:
    """Día siguiente; si cae domingo pasa al lunes"""
    following = value + timedelta(days=1)
    if following.weekday() == 6:
        following += timedelta(days=1)
    return following


# ===== PERÍODOS =====

def previous_period(start: date, end: date) -> Tuple[date, date]:
    """Período de igual duración inmediatamente anterior a `start`"""
    length = (end - start).days + 1
    prev_end = start - timedelta(days=1)
    prev_start = prev_end - timedelta(days=length - 1)
    return prev_start, prev_end


def months_between(first: datetime, now: datetime) -> int:
    """Meses calendario transcurridos entre dos fechas, mínimo 1"""
    delta = relativedelta(now, first)
    return max(1, delta.years * 12 + delta.months)


def percent_change(current: float, previous: float) -> Optional[float]:
    if not previous:
        return None
    return round((current - previous) / previous * 100, 2)
