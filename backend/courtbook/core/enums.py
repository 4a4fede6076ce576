# backend/courtbook/core/enums.py
"""
Core enums for the court booking platform.

Booking state is modelled as one `status` enum and one `payment_status`
enum; there are no shadow boolean flags.
"""

from datetime import date
from enum import Enum


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Payment progress of a booking."""

    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"
    PARTIALLY_PAID = "partially_paid"


class PaymentMethod(str, Enum):
    """How a booking was (or will be) paid."""

    CARD = "card"
    BANK = "bank"
    CASH = "cash"
    FROM_APP = "from_app"
    MULTICAIXA = "multicaixa"


class BookingContext(str, Enum):
    """Which API surface is acting on a booking."""

    BUSINESS = "business"
    MOBILE = "mobile"


class Weekday(str, Enum):
    """Recurring availability day names, Monday first to match date.weekday()."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def for_date(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


class PresenceFilter(str, Enum):
    """Tri-state filter on Booking.present."""

    PRESENT = "true"
    ABSENT = "false"
    UNCHECKED = "null"
