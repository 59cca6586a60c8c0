from fastapi import HTTPException
from sqlalchemy.orm import Session
from pydantic import ValidationError
from typing import Dict, List, Optional
from datetime import date, datetime
from dateutil.relativedelta import relativedelta
import copy
import logging
import uuid

from app.shared.utils.dates import utcnow, today_local, format_day, get_weeks_of_month, get_week_key
from .repository import RepartoRepository
from .schemas import (
    DAY_KEYS, ROWS_PER_DAY,
    RepartoEntry, RepartoEntryUpdate, WeekResponse, RepartosDataResponse,
    RepartosStats, RepartosStatsResponse, WeekInfo, WeeksOfMonthResponse,
    CleanupResponse, RepartosFilter
)

logger = logging.getLogger(__name__)

RETENTION_MONTHS = 6


def validate_week_key(week_key: str) -> str:
    """La semana se identifica por su lunes en formato YYYY-MM-DD"""
    try:
        monday = datetime.strptime(week_key, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Semana inválida: {week_key}")
    if get_week_key(monday) != week_key:
        raise HTTPException(status_code=400, detail=f"La semana debe empezar un lunes: {week_key}")
    return week_key


def validate_day_key(day_key: str) -> str:
    if day_key not in DAY_KEYS:
        raise HTTPException(status_code=400, detail=f"Día inválido: {day_key} (1 a 6)")
    return day_key


def new_entry(text: str = "") -> dict:
    now = utcnow().isoformat()
    return {
        "id": str(uuid.uuid4()),
        "text": text,
        "is_completed": False,
        "created_at": now,
        "updated_at": now,
    }


def empty_week() -> Dict[str, List[dict]]:
    return {day: [new_entry() for _ in range(ROWS_PER_DAY)] for day in DAY_KEYS}


def count_entries(data: dict) -> tuple:
    total = completed = 0
    for entries in (data or {}).values():
        total += len(entries)
        completed += len([e for e in entries if e.get("is_completed")])
    return total, completed


def week_is_completed(data: dict) -> bool:
    total, completed = count_entries(data)
    return total > 0 and total == completed


class RepartoService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = RepartoRepository(db)

    def _latest_weeks(self) -> Dict[str, dict]:
        """Un documento por semana: el más reciente si hubiera duplicados"""
        weeks = {}
        for week in self.repository.get_all():
            weeks.setdefault(week.week_key, week.data or {})
        return weeks

    def _get_week_or_404(self, week_key: str):
        week = self.repository.get_latest(validate_week_key(week_key))
        if not week:
            raise HTTPException(status_code=404, detail=f"No hay repartos para la semana {week_key}")
        return week

    def _get_row(self, data: dict, day_key: str, row_index: int) -> dict:
        entries = data.get(validate_day_key(day_key)) or []
        if row_index < 0 or row_index >= len(entries):
            raise HTTPException(status_code=404, detail=f"Fila {row_index} no encontrada en el día {day_key}")
        return entries[row_index]

    def _week_response(self, week_key: str, data: dict, message: str) -> WeekResponse:
        return WeekResponse(success=True, message=message, week_key=week_key, data=data)

    # ===== CONSULTAS =====

    async def get_all(self, filters: Optional[RepartosFilter] = None) -> RepartosDataResponse:
        weeks = self._latest_weeks()

        if filters and filters.month and filters.year:
            month_keys = {w["week_key"] for w in get_weeks_of_month(filters.year, filters.month)}
            weeks = {key: data for key, data in weeks.items() if key in month_keys}
        elif filters and filters.year:
            weeks = {key: data for key, data in weeks.items() if key.startswith(f"{filters.year}-")}

        if filters and filters.status == "completed":
            weeks = {key: data for key, data in weeks.items() if week_is_completed(data)}
        elif filters and filters.status == "pending":
            weeks = {key: data for key, data in weeks.items() if not week_is_completed(data)}

        ordered = dict(sorted(weeks.items(), reverse=True))
        return RepartosDataResponse(
            success=True,
            message=f"{len(ordered)} semanas",
            weeks=ordered,
            total=len(ordered)
        )

    async def get_week(self, week_key: str) -> WeekResponse:
        week = self._get_week_or_404(week_key)
        return self._week_response(week.week_key, week.data, "Semana encontrada")

    async def get_stats(self) -> RepartosStatsResponse:
        weeks = self._latest_weeks()
        total = completed = 0
        for data in weeks.values():
            week_total, week_completed = count_entries(data)
            total += week_total
            completed += week_completed

        return RepartosStatsResponse(
            success=True,
            message="Estadísticas de repartos",
            stats=RepartosStats(
                total_weeks=len(weeks),
                total_entries=total,
                completed_entries=completed,
                completion_rate=round(completed / total * 100, 2) if total else 0
            )
        )

    async def get_weeks_of_month(self, month: int, year: int) -> WeeksOfMonthResponse:
        return WeeksOfMonthResponse(
            success=True,
            message=f"Semanas de {month}/{year}",
            month=month,
            year=year,
            weeks=[WeekInfo(**w) for w in get_weeks_of_month(year, month)]
        )

    # ===== ESCRITURA =====

    async def save_week(self, week_key: str, data: Dict[str, List[RepartoEntry]]) -> WeekResponse:
        """Reemplaza la semana completa y elimina documentos duplicados"""
        validate_week_key(week_key)
        for day_key in data:
            validate_day_key(day_key)
        payload = {day: [entry.model_dump() for entry in entries] for day, entries in data.items()}

        week = self.repository.get_latest(week_key)
        if week:
            week = self.repository.update_data(week, payload)
            removed = self.repository.delete_duplicates(week_key, week.id)
            if removed:
                logger.warning(f"Se eliminaron {removed} documentos duplicados de la semana {week_key}")
        else:
            week = self.repository.create(week_key, payload)
        return self._week_response(week_key, week.data, "Semana guardada")

    async def initialize_week(self, week_key: str) -> WeekResponse:
        """Crea la semana con 3 filas vacías por día; si ya existe no la toca"""
        validate_week_key(week_key)
        week = self.repository.get_latest(week_key)
        if week:
            return self._week_response(week_key, week.data, "La semana ya existía")
        week = self.repository.create(week_key, empty_week())
        logger.info(f"Semana de repartos {week_key} inicializada")
        return self._week_response(week_key, week.data, "Semana inicializada")

    async def update_entry(
        self, week_key: str, day_key: str, row_index: int, changes: RepartoEntryUpdate
    ) -> WeekResponse:
        week = self._get_week_or_404(week_key)
        data = copy.deepcopy(week.data)
        entry = self._get_row(data, day_key, row_index)

        # id y created_at no se modifican
        entry.update(changes.model_dump(exclude_unset=True))
        entry["updated_at"] = utcnow().isoformat()
        try:
            RepartoEntry.model_validate(entry)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Entrada inválida: {e.errors()}")

        week = self.repository.update_data(week, data)
        return self._week_response(week_key, week.data, "Entrada actualizada")

    async def toggle_entry(self, week_key: str, day_key: str, row_index: int) -> WeekResponse:
        week = self._get_week_or_404(week_key)
        data = copy.deepcopy(week.data)
        entry = self._get_row(data, day_key, row_index)
        entry["is_completed"] = not entry.get("is_completed", False)
        entry["updated_at"] = utcnow().isoformat()

        week = self.repository.update_data(week, data)
        return self._week_response(week_key, week.data, "Entrada actualizada")

    async def add_row(self, week_key: str, day_key: str) -> WeekResponse:
        week = self._get_week_or_404(week_key)
        data = copy.deepcopy(week.data)
        data.setdefault(validate_day_key(day_key), []).append(new_entry())

        week = self.repository.update_data(week, data)
        return self._week_response(week_key, week.data, "Fila agregada")

    async def remove_row(self, week_key: str, day_key: str, row_index: int) -> WeekResponse:
        week = self._get_week_or_404(week_key)
        data = copy.deepcopy(week.data)
        self._get_row(data, day_key, row_index)
        if len(data[day_key]) <= 1:
            raise HTTPException(status_code=400, detail="Cada día debe tener al menos una fila")
        data[day_key].pop(row_index)

        week = self.repository.update_data(week, data)
        return self._week_response(week_key, week.data, "Fila eliminada")

    async def delete_week(self, week_key: str) -> dict:
        deleted = self.repository.delete_week(validate_week_key(week_key))
        if not deleted:
            raise HTTPException(status_code=404, detail=f"No hay repartos para la semana {week_key}")
        return {"success": True, "message": f"Semana {week_key} eliminada", "deleted_count": deleted}

    async def cleanup_old_weeks(self, today: Optional[date] = None) -> CleanupResponse:
        """Elimina las semanas de hace más de 6 meses"""
        limit = (today or today_local()) - relativedelta(months=RETENTION_MONTHS)
        deleted = self.repository.delete_older_than(format_day(limit))
        if deleted:
            logger.info(f"{deleted} semanas de repartos anteriores a {format_day(limit)} eliminadas")
        return CleanupResponse(success=True, message=f"{deleted} semanas eliminadas", deleted_count=deleted)
