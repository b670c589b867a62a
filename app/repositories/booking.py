import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    BookingNotFoundError,
    BookingValidationError,
    SlotConflictError,
    StoreError,
    StoreTimeoutError,
)
from app.models.booking import Booking

logger = structlog.get_logger(__name__)


class BookingStore:
    """Persistence for bookings.

    Every call is bounded by ``timeout`` seconds. Driver failures surface as
    ``StoreError``; a unique-index hit on ``scheduled_at`` surfaces as
    ``SlotConflictError``.
    """

    def __init__(self, db: AsyncSession, timeout: Optional[float] = None):
        self.db = db
        self.timeout = settings.STORE_TIMEOUT_SECONDS if timeout is None else timeout

    async def find_all(self) -> list[Booking]:
        query = select(Booking).order_by(Booking.scheduled_at.asc())
        result = await self._run("find_all", self.db.execute(query))
        return list(result.scalars().all())

    async def get(self, booking_id: int) -> Optional[Booking]:
        query = select(Booking).where(Booking.id == booking_id)
        result = await self._run("get", self.db.execute(query))
        return result.scalar_one_or_none()

    async def find_by_exact_time(
        self, instant: datetime, exclude_id: Optional[int] = None
    ) -> Optional[Booking]:
        query = select(Booking).where(Booking.scheduled_at == instant)
        if exclude_id is not None:
            query = query.where(Booking.id != exclude_id)
        result = await self._run("find_by_exact_time", self.db.execute(query))
        return result.scalars().first()

    async def find_in_range(self, start: datetime, end: datetime) -> list[Booking]:
        query = (
            select(Booking)
            .where(Booking.scheduled_at >= start, Booking.scheduled_at <= end)
            .order_by(Booking.scheduled_at.asc())
        )
        result = await self._run("find_in_range", self.db.execute(query))
        return list(result.scalars().all())

    async def find_next(self, after: datetime) -> Optional[Booking]:
        """Earliest booking at or after ``after``."""
        query = (
            select(Booking)
            .where(Booking.scheduled_at >= after)
            .order_by(Booking.scheduled_at.asc())
            .limit(1)
        )
        result = await self._run("find_next", self.db.execute(query))
        return result.scalars().first()

    async def count_in_range(self, start: datetime, end: datetime) -> int:
        query = select(func.count(Booking.id)).where(
            Booking.scheduled_at >= start, Booking.scheduled_at <= end
        )
        result = await self._run("count_in_range", self.db.execute(query))
        return result.scalar_one()

    async def sum_value_in_range(self, start: datetime, end: datetime) -> Decimal:
        """Sum of ``value`` over ``[start, end]``; ``0`` when nothing matches."""
        query = select(func.sum(Booking.value)).where(
            Booking.scheduled_at >= start, Booking.scheduled_at <= end
        )
        result = await self._run("sum_value_in_range", self.db.execute(query))
        total = result.scalar_one_or_none()
        if total is None:
            return Decimal("0.00")
        return Decimal(total)

    async def insert(self, booking: Booking) -> Booking:
        async def _insert():
            self.db.add(booking)
            await self.db.commit()
            await self.db.refresh(booking)
            return booking

        instant = booking.scheduled_at
        try:
            return await self._run("insert", _insert())
        except IntegrityError as e:
            raise await self._integrity_error(e, instant, None)

    async def update(self, booking_id: int, fields: dict[str, Any]) -> Booking:
        booking = await self.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)
        # A rollback expires the instance, so the instant is read up front
        instant = fields.get("scheduled_at") or booking.scheduled_at

        async def _update():
            for field, value in fields.items():
                if hasattr(booking, field):
                    setattr(booking, field, value)
            await self.db.commit()
            await self.db.refresh(booking)
            return booking

        try:
            return await self._run("update", _update())
        except IntegrityError as e:
            raise await self._integrity_error(e, instant, booking_id)

    async def delete(self, booking_id: int) -> None:
        booking = await self.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(booking_id)

        async def _delete():
            await self.db.delete(booking)
            await self.db.commit()

        await self._run("delete", _delete())

    # Helper methods
    async def _run(self, operation: str, awaitable: Awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError:
            await self._rollback()
            logger.error(
                "Store operation timed out", operation=operation, timeout=self.timeout
            )
            raise StoreTimeoutError(operation, self.timeout)
        except IntegrityError:
            await self._rollback()
            raise
        except SQLAlchemyError as e:
            await self._rollback()
            logger.error("Store operation failed", operation=operation, error=str(e))
            raise StoreError() from e

    async def _rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.warning("Rollback failed", error=str(e))

    async def _integrity_error(
        self, error: IntegrityError, instant: datetime, exclude_id: Optional[int]
    ) -> Exception:
        message = str(error.orig if error.orig is not None else error)
        if "scheduled_at" in message:
            conflicting = await self.find_by_exact_time(instant, exclude_id=exclude_id)
            logger.info(
                "Slot taken by concurrent booking",
                scheduled_at=instant.isoformat(),
                conflicting_id=conflicting.id if conflicting else None,
            )
            return SlotConflictError(conflicting)
        if "check_non_negative_value" in message:
            return BookingValidationError("value must be zero or greater")
        logger.error("Integrity error in booking store", error=message)
        return StoreError()
