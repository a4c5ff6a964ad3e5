"""Time utilities (application timezone)."""

from datetime import datetime
from zoneinfo import ZoneInfo

from app.config import settings

APP_TZ = ZoneInfo(settings.TIMEZONE)


def now_naive() -> datetime:
    """
    Current time in the application timezone, returned as naive datetime for DB storage.
    """
    return datetime.now(APP_TZ).replace(tzinfo=None)
