from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.repositories.booking import BookingStore
from app.services.booking import BookingService
from app.services.revenue import RevenueService

__all__ = ["get_db", "get_booking_service", "get_revenue_service"]


def get_booking_service(db: AsyncSession = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_revenue_service(db: AsyncSession = Depends(get_db)) -> RevenueService:
    return RevenueService(BookingStore(db))
