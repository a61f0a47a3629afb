from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


DEFAULT_TZ = "Europe/Oslo"


def now_local(tz_name: str = DEFAULT_TZ) -> datetime:
    return datetime.now(tz=ZoneInfo(tz_name))


def local_date_string(dt: datetime, tz_name: str = DEFAULT_TZ) -> str:
    """YYYY-MM-DD of ``dt`` in the given zone. Naive datetimes are taken as already local."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(ZoneInfo(tz_name))
    return dt.date().isoformat()
