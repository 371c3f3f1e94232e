"""
Clinic wall-clock helpers.

Timestamps are stored in UTC; daily and monthly figures are computed in
the clinic's own time zone (``CLINIC_TIME_ZONE``, Comoros by default).
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone


def clinic_tz() -> ZoneInfo:
    return ZoneInfo(settings.CLINIC_TIME_ZONE)


def to_clinic_time(value: datetime) -> datetime:
    return timezone.localtime(value, clinic_tz())


def clinic_now() -> datetime:
    return to_clinic_time(timezone.now())


def clinic_today() -> date:
    return clinic_now().date()


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the aware [start, end) interval covering ``day`` in clinic time."""
    start = datetime.combine(day, time.min, tzinfo=clinic_tz())
    return start, start + timedelta(days=1)


def month_bounds(day: date) -> tuple[datetime, datetime]:
    """Return the aware [start, end) interval of the month containing ``day``."""
    start = datetime.combine(day.replace(day=1), time.min, tzinfo=clinic_tz())
    if day.month == 12:
        end_day = date(day.year + 1, 1, 1)
    else:
        end_day = date(day.year, day.month + 1, 1)
    return start, datetime.combine(end_day, time.min, tzinfo=clinic_tz())


def format_clinic(value: datetime | None, fmt: str = '%d/%m/%Y %H:%M') -> str:
    if value is None:
        return ''
    return to_clinic_time(value).strftime(fmt)
