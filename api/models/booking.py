"""
MotoresRD - Booking, availability and dashboard Pydantic schemas.
"""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from api.models.motorcycle import MotorcycleImage
from api.models.user import normalize_phone


# =============================================================================
# Type Definitions
# =============================================================================

BookingStatus = Literal[
    "pending",
    "confirmed",
    "in_progress",
    "completed",
    "cancelled",
    "rejected",
]


# =============================================================================
# Booking Schemas
# =============================================================================


class BookingFormData(BaseModel):
    """Customer booking request. The price is computed server-side."""

    motorcycle_id: UUID
    start_date: date
    end_date: date
    customer_name: str = Field(..., min_length=1, max_length=150)
    customer_email: str = Field(..., min_length=3, max_length=255)
    customer_phone: str = Field(..., min_length=1, max_length=30)
    pickup_location: str | None = Field(None, max_length=300)
    dropoff_location: str | None = Field(None, max_length=300)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return normalize_phone(v) or v

    @model_validator(mode="after")
    def check_dates(self) -> "BookingFormData":
        if self.end_date < self.start_date:
            raise ValueError("La fecha de devolución no puede ser anterior a la de recogida")
        return self


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    reason: str | None = Field(None, max_length=1000)


class CancelBookingRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    """Schema for booking response."""

    id: UUID
    motorcycle_id: UUID
    user_id: UUID
    owner_id: UUID
    start_date: date
    end_date: date
    total_days: int
    daily_rate: Decimal
    total_price: Decimal
    deposit: Decimal | None
    status: BookingStatus
    customer_name: str
    customer_email: str
    customer_phone: str
    pickup_location: str | None
    dropoff_location: str | None
    notes: str | None
    cancellation_reason: str | None
    confirmed_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingMotorcycleSummary(BaseModel):
    make: str
    model: str
    slug: str
    images: list[MotorcycleImage] = Field(default_factory=list)


class BookingOwnerSummary(BaseModel):
    business_name: str
    phone: str


class BookingWithDetails(BookingResponse):
    """Booking joined with its listing and the listing owner."""

    motorcycle: BookingMotorcycleSummary
    owner: BookingOwnerSummary


# =============================================================================
# Availability Schemas
# =============================================================================


class DayAvailability(BaseModel):
    date: dt.date
    is_available: bool
    is_booked: bool
    booking_id: UUID | None = None


class AvailabilityCalendar(BaseModel):
    motorcycle_id: UUID
    year: int
    month: int
    days: list[DayAvailability]


class AvailabilityCheckResponse(BaseModel):
    motorcycle_id: UUID
    start_date: date
    end_date: date
    available: bool


class BlockDatesRequest(BaseModel):
    dates: list[date] = Field(..., min_length=1, max_length=366)
    reason: str | None = Field(None, max_length=300)


class UnblockDatesRequest(BaseModel):
    dates: list[date] = Field(..., min_length=1, max_length=366)


class BlockedDateResponse(BaseModel):
    date: dt.date
    blocked_reason: str | None


class BookedDateResponse(BaseModel):
    date: dt.date
    booking_id: UUID


# =============================================================================
# Dashboard Schemas
# =============================================================================


class KPITrends(BaseModel):
    """Month-over-month change, in whole percent."""

    motorcycles: int
    bookings: int
    users: int
    revenue: int


class AdminKPIs(BaseModel):
    total_motorcycles: int
    active_bookings: int
    total_users: int
    monthly_revenue: Decimal
    trends: KPITrends


class DealerStats(BaseModel):
    total_motorcycles: int
    available_motorcycles: int
    pending_bookings: int
    active_bookings: int
    monthly_revenue: Decimal
    total_revenue: Decimal
