"""Calendar windows (day, Monday-based week, month) in a given timezone.

All functions are pure. Returned datetimes are timezone-aware in ``tz``.
Period ends are the last microsecond of the period, so a booking stored at
``23:59:59`` is inside its day.
"""

import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple, Union
from zoneinfo import ZoneInfo

TzInfo = Union[ZoneInfo, timezone]

_LAST_MICROSECOND = time(23, 59, 59, 999999)

# ISO 8601 calendar date, optionally followed by a time of day
_ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}|$)")


class TimeWindow(NamedTuple):
    """Closed interval ``[start, end]``."""

    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


def to_local(instant: datetime, tz: TzInfo) -> datetime:
    """Express ``instant`` in ``tz``; naive values are taken as wall time in ``tz``."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant.astimezone(tz)


def to_utc(instant: datetime, tz: TzInfo) -> datetime:
    return to_local(instant, tz).astimezone(timezone.utc)


def is_iso_datetime(value: str) -> bool:
    return bool(_ISO_DATETIME.match(value.strip()))


def _at(day: date, moment: time, tz: TzInfo) -> datetime:
    return datetime.combine(day, moment, tzinfo=tz)


def start_of_day(instant: datetime, tz: TzInfo) -> datetime:
    return _at(to_local(instant, tz).date(), time.min, tz)


def end_of_day(instant: datetime, tz: TzInfo) -> datetime:
    return _at(to_local(instant, tz).date(), _LAST_MICROSECOND, tz)


def start_of_week(instant: datetime, tz: TzInfo) -> datetime:
    local_day = to_local(instant, tz).date()
    monday = local_day - timedelta(days=local_day.weekday())
    return _at(monday, time.min, tz)


def end_of_week(instant: datetime, tz: TzInfo) -> datetime:
    local_day = to_local(instant, tz).date()
    sunday = local_day + timedelta(days=6 - local_day.weekday())
    return _at(sunday, _LAST_MICROSECOND, tz)


def start_of_month(instant: datetime, tz: TzInfo) -> datetime:
    local_day = to_local(instant, tz).date()
    return _at(local_day.replace(day=1), time.min, tz)


def end_of_month(instant: datetime, tz: TzInfo) -> datetime:
    local_day = to_local(instant, tz).date()
    last = calendar.monthrange(local_day.year, local_day.month)[1]
    return _at(local_day.replace(day=last), _LAST_MICROSECOND, tz)


def day_window(instant: datetime, tz: TzInfo) -> TimeWindow:
    return TimeWindow(start_of_day(instant, tz), end_of_day(instant, tz))


def week_window(instant: datetime, tz: TzInfo) -> TimeWindow:
    return TimeWindow(start_of_week(instant, tz), end_of_week(instant, tz))


def month_window(instant: datetime, tz: TzInfo) -> TimeWindow:
    return TimeWindow(start_of_month(instant, tz), end_of_month(instant, tz))


def window_for_date(day: date, tz: TzInfo) -> TimeWindow:
    """Day window of a calendar date."""
    return TimeWindow(_at(day, time.min, tz), _at(day, _LAST_MICROSECOND, tz))
