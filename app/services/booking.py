from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BookingNotFoundError, SlotConflictError
from app.models.booking import Booking
from app.repositories.booking import BookingStore
from app.schemas.booking import Booking as BookingSchema
from app.schemas.booking import (
    BookingCreate,
    BookingUpdate,
    DailySchedule,
    DashboardSummary,
    NextBooking,
    SlotGrid,
    SlotStatus,
)
from app.services.conflicts import SlotCheck, check_slot, normalize_instant
from app.utils.time_windows import TzInfo, day_window, to_local, window_for_date

logger = structlog.get_logger(__name__)


class BookingService:
    """Booking admission, editing and the daily views built on top of them."""

    def __init__(
        self,
        db: AsyncSession,
        tz: Optional[TzInfo] = None,
        store: Optional[BookingStore] = None,
    ):
        self.db = db
        self.tz = tz or settings.shop_tz
        self.store = store or BookingStore(db)

    async def check_slot(
        self, scheduled_at: Union[str, datetime], exclude_id: Optional[int] = None
    ) -> SlotCheck:
        """Check whether ``scheduled_at`` is free.

        Only the booking at exactly the same instant is read; the result is
        equivalent to ``check_slot`` over the whole collection.
        """
        instant = normalize_instant(scheduled_at, self.tz)
        existing = await self.store.find_by_exact_time(instant, exclude_id=exclude_id)
        return check_slot(instant, [existing] if existing else [], exclude_id)

    async def create_booking(self, booking_data: BookingCreate) -> Booking:
        """Admit a new booking if its slot is free."""
        slot = await self.check_slot(booking_data.scheduled_at)
        if not slot.admitted:
            logger.info(
                "Booking rejected, slot taken",
                scheduled_at=slot.instant.isoformat(),
                conflicting_id=slot.conflicting.id,
            )
            raise SlotConflictError(slot.conflicting)

        booking = Booking(
            client_name=booking_data.client_name,
            scheduled_at=slot.instant,
            value=booking_data.value,
        )
        booking = await self.store.insert(booking)

        logger.info(
            "Booking created",
            booking_id=booking.id,
            scheduled_at=booking.scheduled_at.isoformat(),
            value=str(booking.value),
        )
        return booking

    async def list_bookings(self) -> list[Booking]:
        return await self.store.find_all()

    async def get_booking(self, booking_id: int) -> Booking:
        booking = await self.store.get(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    async def update_booking(
        self, booking_id: int, update_data: BookingUpdate
    ) -> Booking:
        """Replace a booking's fields.

        An unknown id is reported before any slot conflict. The slot rule is
        re-applied against every other booking, so keeping the same instant
        never conflicts with the booking itself.
        """
        await self.get_booking(booking_id)
        slot = await self.check_slot(update_data.scheduled_at, exclude_id=booking_id)
        if not slot.admitted:
            logger.info(
                "Booking update rejected, slot taken",
                booking_id=booking_id,
                scheduled_at=slot.instant.isoformat(),
                conflicting_id=slot.conflicting.id,
            )
            raise SlotConflictError(slot.conflicting)

        booking = await self.store.update(
            booking_id,
            {
                "client_name": update_data.client_name,
                "scheduled_at": slot.instant,
                "value": update_data.value,
            },
        )
        logger.info("Booking updated", booking_id=booking_id)
        return booking

    async def delete_booking(self, booking_id: int) -> None:
        await self.store.delete(booking_id)
        logger.info("Booking deleted", booking_id=booking_id)

    async def get_daily_schedule(self, day: date) -> DailySchedule:
        """Bookings of one calendar day in the shop timezone, earliest first."""
        window = window_for_date(day, self.tz)
        bookings = await self.store.find_in_range(window.start, window.end)
        total = sum((Decimal(b.value) for b in bookings), Decimal("0.00"))
        return DailySchedule(
            day=day,
            bookings=[BookingSchema.model_validate(b) for b in bookings],
            booking_count=len(bookings),
            total_value=total,
        )

    async def get_slot_grid(self, day: date) -> SlotGrid:
        """Configured slot grid of a day, each slot flagged free or booked."""
        window = window_for_date(day, self.tz)
        bookings = await self.store.find_in_range(window.start, window.end)
        taken = {b.scheduled_at: b.id for b in bookings}

        first = datetime.combine(day, settings.FIRST_SLOT_TIME, tzinfo=self.tz)
        step = timedelta(minutes=settings.SLOT_INTERVAL_MINUTES)
        slots = []
        for i in range(settings.SLOTS_PER_DAY):
            starts_at = first + i * step
            booking_id = taken.get(starts_at.astimezone(timezone.utc))
            slots.append(
                SlotStatus(
                    starts_at=starts_at,
                    label=starts_at.strftime("%H:%M"),
                    available=booking_id is None,
                    booking_id=booking_id,
                )
            )
        return SlotGrid(day=day, slots=slots)

    async def get_dashboard(self, now: Optional[datetime] = None) -> DashboardSummary:
        """Today's booking count and the next client from ``now`` onwards."""
        now = now or datetime.now(timezone.utc)
        window = day_window(now, self.tz)
        bookings_today = await self.store.count_in_range(window.start, window.end)
        upcoming = await self.store.find_next(to_local(now, self.tz))
        return DashboardSummary(
            bookings_today=bookings_today,
            next_booking=NextBooking.model_validate(upcoming) if upcoming else None,
        )
