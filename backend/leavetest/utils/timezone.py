"""
Timezone helpers. Timestamps are stored naive, in the configured local zone.
"""
from datetime import date, datetime

import pytz

from leavetest.core.config import settings


LOCAL_TZ = pytz.timezone(settings.default_timezone)


def get_local_now() -> datetime:
    """Current time in the configured timezone"""
    return datetime.now(LOCAL_TZ)


def get_naive_now() -> datetime:
    """Current local time without tzinfo, as stored in the database"""
    return get_local_now().replace(tzinfo=None)


def get_local_today() -> date:
    return get_local_now().date()


def format_local_time(dt: datetime, format_str: str = "%d.%m.%Y, %H:%M:%S") -> str:
    """Format a stored (naive, local) timestamp for display"""
    if dt.tzinfo is None:
        dt = LOCAL_TZ.localize(dt)
    return dt.astimezone(LOCAL_TZ).strftime(format_str)
