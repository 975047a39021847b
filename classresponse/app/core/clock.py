"""Civil-time helpers.

All session timestamps are stamped and compared in the single zone named by
`settings.TIMEZONE`.
"""
from datetime import date, datetime, time, timedelta
from functools import lru_cache
from zoneinfo import ZoneInfo

from classresponse.app.core.config import settings


@lru_cache(maxsize=None)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def canonical_zone() -> ZoneInfo:
    return _zone(settings.TIMEZONE)


def local_now() -> datetime:
    return datetime.now(canonical_zone())


def as_local(value: datetime | None) -> datetime | None:
    """Express a stored timestamp in the canonical zone.

    Backends without time zone support (SQLite) hand back naive values; those
    were written in the canonical zone, so the zone is attached rather than
    converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=canonical_zone())
    return value.astimezone(canonical_zone())


def placeholder_window(session_date: date, duration_minutes: int) -> tuple[datetime, datetime]:
    start = datetime.combine(session_date, time.min, tzinfo=canonical_zone())
    return start, start + timedelta(minutes=duration_minutes)
