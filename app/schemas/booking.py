from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.utils.time_windows import is_iso_datetime

CENTS = Decimal("0.01")


class CamelModel(BaseModel):
    """Wire format is camelCase; snake_case is accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Base booking schemas
class BookingBase(CamelModel):
    client_name: str = Field(
        ..., min_length=2, max_length=120, description="Client name"
    )
    scheduled_at: datetime = Field(..., description="Booked instant")
    value: Decimal = Field(
        Decimal("0"), ge=0, max_digits=10, decimal_places=2, description="Booking value"
    )

    @field_validator("client_name", mode="before")
    @classmethod
    def strip_client_name(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("scheduled_at", mode="before")
    @classmethod
    def require_iso_datetime(cls, v):
        if isinstance(v, (int, float)) or (
            isinstance(v, str) and not is_iso_datetime(v)
        ):
            raise ValueError("scheduledAt must be an ISO 8601 date/time")
        return v

    @field_validator("value")
    @classmethod
    def quantize_value(cls, v: Decimal) -> Decimal:
        return v.quantize(CENTS)


class BookingCreate(BookingBase):
    pass


class BookingUpdate(BookingBase):
    """Full replacement of a booking's editable fields."""


# Response schemas
class Booking(CamelModel):
    id: int
    client_name: str
    scheduled_at: datetime
    value: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SlotCheckResponse(CamelModel):
    scheduled_at: datetime
    admitted: bool
    conflicting: Optional[Booking] = None


class DailySchedule(CamelModel):
    day: date
    bookings: List[Booking]
    booking_count: int
    total_value: Decimal


class SlotStatus(CamelModel):
    starts_at: datetime
    label: str
    available: bool
    booking_id: Optional[int] = None


class SlotGrid(CamelModel):
    day: date
    slots: List[SlotStatus]


# Revenue and dashboard schemas
class RevenueSummary(CamelModel):
    day: Decimal = Field(Decimal("0"), ge=0)
    week: Decimal = Field(Decimal("0"), ge=0)
    month: Decimal = Field(Decimal("0"), ge=0)


class NextBooking(CamelModel):
    client_name: str
    scheduled_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DashboardSummary(CamelModel):
    bookings_today: int
    next_booking: Optional[NextBooking] = None
