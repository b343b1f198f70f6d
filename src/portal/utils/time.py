# File location: src/portal/utils/time.py
from datetime import date, datetime
from typing import Optional, Union

import pytz

from src.portal.config.settings import APP_TIMEZONE

LOCAL_TZ = pytz.timezone(APP_TIMEZONE)


def get_current_time() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(pytz.UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def to_local_time(dt: datetime) -> datetime:
    return ensure_utc(dt).astimezone(LOCAL_TZ)


def local_today() -> date:
    return get_current_time().astimezone(LOCAL_TZ).date()


def format_document_date(value: Optional[Union[date, datetime]]) -> str:
    """Format a date the way it is printed on documents, e.g. '05 March 2025'."""
    if value is None:
        return "Not Specified"
    if isinstance(value, datetime):
        value = to_local_time(value).date()
    return value.strftime("%d %B %Y")
