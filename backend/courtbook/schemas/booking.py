# backend/courtbook/schemas/booking.py
"""
Booking schemas for the court booking platform.

A request either names one interval (start_time/end_time) or lists slots;
a slot list may be split into several bookings, one per contiguous block.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.enums import BookingStatus, PaymentMethod, PaymentStatus
from ..utils.time_utils import minutes_to_label, parse_hhmm
from .base import StandardizedModel, StrictRequestModel


def _validate_hhmm(value: Optional[str], *, is_end_time: bool = False) -> Optional[str]:
    if value is None:
        return value
    try:
        minutes = parse_hhmm(value, is_end_time=is_end_time)
    except ValueError:
        raise ValueError(f"Invalid time format: {value}. Expected HH:MM format.")
    return minutes_to_label(minutes)


def _require_interval_or_slots(start_time: Optional[str], end_time: Optional[str], slots: Optional[list]) -> None:
    has_pair = bool(start_time and end_time)
    if not has_pair and not slots:
        raise ValueError("Either start_time and end_time or slots must be provided")
    if has_pair and slots:
        raise ValueError("Provide either start_time/end_time or slots, not both")
    if has_pair and parse_hhmm(end_time, is_end_time=True) <= parse_hhmm(start_time):
        raise ValueError("end_time must be after start_time")


def _reject_overlapping_slots(slots: Optional[list]) -> None:
    ordered = sorted((parse_hhmm(s.start), parse_hhmm(s.end, is_end_time=True)) for s in slots or [])
    for (_, previous_end), (start, _) in zip(ordered, ordered[1:]):
        if start < previous_end:
            raise ValueError("slots must not overlap or repeat")


class SlotInput(StrictRequestModel):
    start: str = Field(..., description="Slot start (HH:MM)")
    end: str = Field(..., description="Slot end (HH:MM)")

    @field_validator("start")
    @classmethod
    def _check_start(cls, v: str) -> str:
        return _validate_hhmm(v)

    @field_validator("end")
    @classmethod
    def _check_end(cls, v: str) -> str:
        return _validate_hhmm(v, is_end_time=True)

    @model_validator(mode="after")
    def _end_after_start(self) -> "SlotInput":
        if parse_hhmm(self.end, is_end_time=True) <= parse_hhmm(self.start):
            raise ValueError("Slot end must be after its start")
        return self


class _BookingFields(StrictRequestModel):
    start_time: Optional[str] = Field(None, description="Start time (HH:MM)")
    end_time: Optional[str] = Field(None, description="End time (HH:MM)")
    slots: Optional[List[SlotInput]] = Field(None, description="Slots to book; split into contiguous blocks")
    price: Optional[int] = Field(None, ge=0, description="Price in minor currency units")
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None

    @field_validator("start_time")
    @classmethod
    def _check_start(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hhmm(v)

    @field_validator("end_time")
    @classmethod
    def _check_end(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hhmm(v, is_end_time=True)

    @model_validator(mode="after")
    def _check_shape(self) -> "_BookingFields":
        if self.slots is not None and len(self.slots) == 0:
            raise ValueError("slots must not be empty")
        _reject_overlapping_slots(self.slots)
        if self.start_time and self.end_time:
            if parse_hhmm(self.end_time, is_end_time=True) <= parse_hhmm(self.start_time):
                raise ValueError("end_time must be after start_time")
        if self.payment_status == PaymentStatus.PAID and self.payment_method is None:
            raise ValueError("payment_method is required when payment_status is paid")
        return self


class BookingCreate(_BookingFields):
    """Create one or more bookings for a client on a court."""

    court_id: int = Field(..., description="Court to book")
    client_id: int = Field(..., description="Client the booking is for")
    start_date: date = Field(..., description="Date of the booking")

    @model_validator(mode="after")
    def _interval_or_slots(self) -> "BookingCreate":
        _require_interval_or_slots(self.start_time, self.end_time, self.slots)
        return self


class MobileBookingCreate(StrictRequestModel):
    """Mobile booking request: the client books for themselves, payment happens in the app."""

    court_id: int
    client_id: int
    start_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    slots: Optional[List[SlotInput]] = None

    @field_validator("start_time")
    @classmethod
    def _check_start(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hhmm(v)

    @field_validator("end_time")
    @classmethod
    def _check_end(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hhmm(v, is_end_time=True)

    @model_validator(mode="after")
    def _interval_or_slots(self) -> "MobileBookingCreate":
        _require_interval_or_slots(self.start_time, self.end_time, self.slots)
        _reject_overlapping_slots(self.slots)
        return self

    def to_booking_create(self) -> BookingCreate:
        return BookingCreate(
            court_id=self.court_id,
            client_id=self.client_id,
            start_date=self.start_date,
            start_time=self.start_time,
            end_time=self.end_time,
            slots=self.slots,
            payment_method=PaymentMethod.FROM_APP,
        )


class BookingUpdate(_BookingFields):
    """Partial booking patch; only the fields sent are applied."""

    court_id: Optional[int] = None
    start_date: Optional[date] = None


class PresenceUpdate(StrictRequestModel):
    present: bool


class ClientSummary(StandardizedModel):
    id: int
    name: str
    email: Optional[str] = None


class BookingResponse(StandardizedModel):
    id: int
    tenant_id: int
    court_id: int
    user_id: int
    start_date: date
    end_date: date
    start_time: str
    end_time: str
    price: int
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    present: Optional[bool] = None
    qr_code: Optional[str] = None
    client: Optional[ClientSummary] = None
    created_at: Optional[datetime] = None
    local_start: Optional[str] = None
    local_end: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _format_time(cls, v: object) -> object:
        if hasattr(v, "strftime"):
            return v.strftime("%H:%M")
        return v


class BookingBatchResponse(StandardizedModel):
    """Primary booking plus any sibling rows created by splitting the request."""

    booking: BookingResponse
    siblings: List[BookingResponse] = Field(default_factory=list)
