from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.deps.database import get_booking_service
from app.api.errors import http_error, server_error
from app.core.exceptions import BookingError
from app.schemas.booking import (
    Booking,
    BookingCreate,
    BookingUpdate,
    DailySchedule,
    SlotCheckResponse,
    SlotGrid,
)
from app.services.booking import BookingService

router = APIRouter()


@router.get("", response_model=list[Booking])
async def list_bookings(service: BookingService = Depends(get_booking_service)):
    """All bookings, earliest first."""
    try:
        return await service.list_bookings()
    except BookingError as e:
        raise http_error(e, "Failed to fetch bookings")
    except Exception:
        raise await server_error(service.db, "Failed to fetch bookings")


@router.post("", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    service: BookingService = Depends(get_booking_service),
):
    """Book a client into a free slot."""
    try:
        return await service.create_booking(booking_data)
    except BookingError as e:
        raise http_error(e, "Failed to create booking")
    except Exception:
        raise await server_error(service.db, "Failed to create booking")


@router.get("/schedule", response_model=DailySchedule)
async def get_daily_schedule(
    day: date = Query(..., description="Calendar day, YYYY-MM-DD"),
    service: BookingService = Depends(get_booking_service),
):
    """Bookings of one day with the day's total."""
    try:
        return await service.get_daily_schedule(day)
    except BookingError as e:
        raise http_error(e, "Failed to fetch schedule")
    except Exception:
        raise await server_error(service.db, "Failed to fetch schedule")


@router.get("/slots", response_model=SlotGrid)
async def get_slot_grid(
    day: date = Query(..., description="Calendar day, YYYY-MM-DD"),
    service: BookingService = Depends(get_booking_service),
):
    """Bookable slots of one day and whether each is free."""
    try:
        return await service.get_slot_grid(day)
    except BookingError as e:
        raise http_error(e, "Failed to fetch slots")
    except Exception:
        raise await server_error(service.db, "Failed to fetch slots")


@router.get("/conflicts", response_model=SlotCheckResponse)
async def check_slot(
    scheduled_at: str = Query(..., alias="scheduledAt"),
    service: BookingService = Depends(get_booking_service),
):
    """Tell whether a date/time is still free before submitting a booking."""
    try:
        slot = await service.check_slot(scheduled_at)
    except BookingError as e:
        raise http_error(e, "Failed to check slot")
    except Exception:
        raise await server_error(service.db, "Failed to check slot")

    return SlotCheckResponse(
        scheduled_at=slot.instant,
        admitted=slot.admitted,
        conflicting=(
            Booking.model_validate(slot.conflicting) if slot.conflicting else None
        ),
    )


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: int, service: BookingService = Depends(get_booking_service)
):
    try:
        return await service.get_booking(booking_id)
    except BookingError as e:
        raise http_error(e, "Failed to fetch booking")
    except Exception:
        raise await server_error(service.db, "Failed to fetch booking")


@router.put("/{booking_id}", response_model=Booking)
async def update_booking(
    booking_id: int,
    update_data: BookingUpdate,
    service: BookingService = Depends(get_booking_service),
):
    """Replace a booking's name, date/time and value."""
    try:
        return await service.update_booking(booking_id, update_data)
    except BookingError as e:
        raise http_error(e, "Failed to update booking")
    except Exception:
        raise await server_error(service.db, "Failed to update booking")


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int, service: BookingService = Depends(get_booking_service)
):
    try:
        await service.delete_booking(booking_id)
    except BookingError as e:
        raise http_error(e, "Failed to delete booking")
    except Exception:
        raise await server_error(service.db, "Failed to delete booking")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
