from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from marketplace.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_midnight(now: datetime | None = None, tz: str | None = None) -> datetime:
    """Start of "today" in the configured zone, as an aware datetime."""
    zone = ZoneInfo(tz or settings.timezone)
    local = (now or utcnow()).astimezone(zone)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def as_aware(value: datetime | None, tz: str | None = None) -> datetime | None:
    """Naive datetimes (e.g. "2024-05-01" from a query string) are read as local time."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=ZoneInfo(tz or settings.timezone))
