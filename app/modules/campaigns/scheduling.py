# app/modules/campaigns/scheduling.py
from datetime import datetime, timedelta
from typing import Optional

from croniter import croniter

from app.shared.utils.dates import to_utc_naive


def cron_fire_times(schedule_cron: str, now: datetime) -> tuple:
    """Disparo anterior y siguiente de la expresión alrededor de `now`"""
    previous_run = croniter(schedule_cron, now).get_prev(datetime)
    next_run = croniter(schedule_cron, now).get_next(datetime)
    return previous_run, next_run


def due_fire_time(schedule_cron: str, now: datetime, window_seconds: int = 120) -> Optional[datetime]:
    """
    Disparo que cae dentro de la ventana alrededor de `now`: el anterior si
    fue hace menos de la ventana, o el siguiente si llega antes. None si no
    hay ninguno.
    """
    previous_run, next_run = cron_fire_times(schedule_cron, now)
    window = timedelta(seconds=window_seconds)
    if now - previous_run < window:
        return previous_run
    if timedelta(0) < next_run - now < window:
        return next_run
    return None


def is_campaign_due(schedule_cron: str, now: datetime, window_seconds: int = 120) -> bool:
    return due_fire_time(schedule_cron, now, window_seconds) is not None


def already_ran(last_run: Optional[datetime], fire_time: datetime, window_seconds: int = 120) -> bool:
    """`last_run` (UTC naive) ya cubre la ventana de este disparo"""
    if last_run is None:
        return False
    window_start = to_utc_naive(fire_time - timedelta(seconds=window_seconds))
    return last_run >= window_start


def next_run_utc(schedule_cron: str, now: datetime) -> datetime:
    """Próximo disparo como UTC naive, igual que el resto de los timestamps"""
    return to_utc_naive(croniter(schedule_cron, now).get_next(datetime))
