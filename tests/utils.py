from datetime import datetime

from app.core.config import settings


def shop_time(year, month, day, hour=0, minute=0, second=0) -> datetime:
    """Aware datetime on the shop's wall clock."""
    return datetime(year, month, day, hour, minute, second, tzinfo=settings.shop_tz)


def parse_dt(value: str) -> datetime:
    """Parse an ISO 8601 string as returned by the API."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))
