"""
Parseo de intervalos de repeticion legibles ("1 hour", "2 days", "1 week", "3 months")
a triggers de APScheduler.
"""
import re

from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.shared.exceptions.sync import SyncConfigError


_INTERVAL_RE = re.compile(
    r"^(\d+)\s*(second|seconds|minute|minutes|hour|hours|day|days|week|weeks|month|months)$",
    re.IGNORECASE,
)

# Unidad singular -> argumento de IntervalTrigger
_INTERVAL_UNITS = {
    "second": "seconds",
    "minute": "minutes",
    "hour": "hours",
    "day": "days",
    "week": "weeks",
}


def parse_repeat_interval(interval: str) -> BaseTrigger:
    """
    Convierte un intervalo legible en un trigger de APScheduler.

    - segundos/minutos/horas/días/semanas -> IntervalTrigger
    - meses -> CronTrigger a medianoche del dia 1 cada N meses

    Raises:
        SyncConfigError: si el intervalo no tiene un formato soportado o es 0.
    """
    match = _INTERVAL_RE.match((interval or "").strip())
    if not match:
        raise SyncConfigError(f'Intervalo inválido: "{interval}"', field="PRODUCT_SYNC_INTERVAL")

    amount = int(match.group(1))
    if amount <= 0:
        raise SyncConfigError(f'El intervalo debe ser positivo: "{interval}"', field="PRODUCT_SYNC_INTERVAL")

    unit = match.group(2).lower().rstrip("s")
    if unit == "month":
        return CronTrigger(month=f"*/{amount}", day=1, hour=0, minute=0)

    return IntervalTrigger(**{_INTERVAL_UNITS[unit]: amount})
