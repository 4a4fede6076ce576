"""Domain events published to the background job queue."""

from .booking_events import BookingCancelled, BookingCreated, BookingUpdated
from .publisher import EventPublisher

__all__ = [
    "BookingCancelled",
    "BookingCreated",
    "BookingUpdated",
    "EventPublisher",
]
