from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Union

from pydantic import TypeAdapter, ValidationError

from app.core.exceptions import BookingValidationError
from app.models.booking import Booking
from app.utils.time_windows import TzInfo, is_iso_datetime, to_utc

_datetime_adapter = TypeAdapter(datetime)


@dataclass(frozen=True)
class SlotCheck:
    """Outcome of a slot check: admitted, or rejected with the holder."""

    instant: datetime
    conflicting: Optional[Booking] = None

    @property
    def admitted(self) -> bool:
        return self.conflicting is None


def normalize_instant(value: Union[str, datetime], tz: TzInfo) -> datetime:
    """Parse and normalize a candidate instant to whole seconds in UTC.

    Naive values are wall-clock time in ``tz``. Anything that is not a
    datetime or an ISO 8601 string raises ``BookingValidationError``.
    """
    if isinstance(value, str):
        if not is_iso_datetime(value):
            raise BookingValidationError(f"Invalid date/time: {value!r}")
        try:
            value = _datetime_adapter.validate_python(value.strip())
        except ValidationError:
            raise BookingValidationError(f"Invalid date/time: {value!r}")
    if not isinstance(value, datetime):
        raise BookingValidationError(f"Invalid date/time: {value!r}")
    return to_utc(value, tz).replace(microsecond=0)


def check_slot(
    instant: datetime,
    bookings: Iterable[Booking],
    exclude_id: Optional[int] = None,
) -> SlotCheck:
    """Exact-instant conflict check against a snapshot of bookings.

    Two bookings conflict only when their instants are equal to the second;
    neighbouring instants never conflict.
    """
    for booking in bookings:
        if exclude_id is not None and booking.id == exclude_id:
            continue
        if booking.occupies(instant):
            return SlotCheck(instant, booking)
    return SlotCheck(instant)
