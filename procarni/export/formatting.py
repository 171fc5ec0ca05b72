# procarni/export/formatting.py
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from procarni.core.settings import settings
from procarni.domain.views import NA


def _display_tz() -> ZoneInfo:
    return ZoneInfo(settings.DISPLAY_TIMEZONE)


def to_local(value: datetime) -> datetime:
    # naive values come back from SQLite; they were stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(_display_tz())


def short_id(value: Optional[str]) -> str:
    """First 8 characters of an id, for display only."""
    if not value:
        return NA
    return str(value)[:8]


def format_datetime(value: Optional[datetime]) -> str:
    """dd/mm/YYYY, HH:MM:SS in the display timezone (es-VE style)."""
    if value is None:
        return NA
    return to_local(value).strftime("%d/%m/%Y, %H:%M:%S")


def format_date(value: Optional[date]) -> str:
    if value is None:
        return NA
    if isinstance(value, datetime):
        value = to_local(value)
    return value.strftime("%d/%m/%Y")


def today_stamp(now: Optional[datetime] = None) -> str:
    """dd-mm-YYYY for filenames."""
    now = now or datetime.now(timezone.utc)
    return to_local(now).strftime("%d-%m-%Y")
