from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from app.core.config import settings
from app.models.booking import Booking
from app.repositories.booking import BookingStore
from app.schemas.booking import RevenueSummary
from app.utils.time_windows import (
    TimeWindow,
    TzInfo,
    day_window,
    month_window,
    week_window,
)

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")


def revenue_windows(now: datetime, tz: TzInfo) -> dict[str, TimeWindow]:
    """Day, Monday-based week and month windows containing ``now``."""
    return {
        "day": day_window(now, tz),
        "week": week_window(now, tz),
        "month": month_window(now, tz),
    }


def aggregate_revenue(
    bookings: Iterable[Booking], now: datetime, tz: TzInfo
) -> RevenueSummary:
    """Sum booking values per window over an in-memory snapshot.

    Windows overlap, so a single booking can count toward all three sums.
    """
    windows = revenue_windows(now, tz)
    totals = {name: ZERO for name in windows}
    for booking in bookings:
        for name, window in windows.items():
            if window.contains(booking.scheduled_at):
                totals[name] += Decimal(booking.value)
    return RevenueSummary(**totals)


class RevenueService:
    """Revenue summaries computed by the store, one query per window."""

    def __init__(self, store: BookingStore, tz: Optional[TzInfo] = None):
        self.store = store
        self.tz = tz or settings.shop_tz

    async def get_summary(self, now: Optional[datetime] = None) -> RevenueSummary:
        now = now or datetime.now(timezone.utc)
        totals = {}
        for name, window in revenue_windows(now, self.tz).items():
            totals[name] = await self.store.sum_value_in_range(window.start, window.end)

        logger.info(
            "Revenue summary computed",
            reference=now.isoformat(),
            day=str(totals["day"]),
            week=str(totals["week"]),
            month=str(totals["month"]),
        )
        return RevenueSummary(**totals)
