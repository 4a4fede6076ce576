# backend/courtbook/services/conflict_resolver.py
"""
Conflict Resolver for the court booking platform.

Two questions are answered here:

- Which candidate slots are still free? Every non-cancelled booking blocks
  [start - buffer, end + buffer), whoever asks.
- Is one explicit interval free for a given client? A direct overlap is
  always a conflict. Touching only the buffer zone of a booking is a
  conflict unless that booking belongs to the same client, which lets one
  client book consecutive blocks back to back.
"""

from dataclasses import dataclass
from datetime import date
import logging
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import BookingStatus
from ..models.court import Court
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..utils.time_utils import minutes_to_label, time_to_minutes
from .base import BaseService
from .slot_generator import Range, Slot

logger = logging.getLogger(__name__)

OVERLAP = "overlap"
BUFFER = "buffer"


@dataclass(frozen=True)
class Conflict:
    """Why a requested interval was rejected."""

    booking_id: Optional[int]
    start: int
    end: int
    reason: str
    buffer_minutes: int = 0

    @property
    def window(self) -> str:
        return f"{minutes_to_label(self.start)}-{minutes_to_label(self.end)}"

    def message(self, requested: Slot) -> str:
        if self.reason == OVERLAP:
            return f"The time slot {requested} overlaps an existing booking ({self.window})"
        return (
            f"The time slot {requested} falls within the {self.buffer_minutes}-minute "
            f"buffer around an existing booking ({self.window})"
        )


def booking_range(booking: Any) -> Range:
    return (
        time_to_minutes(booking.start_time),
        time_to_minutes(booking.end_time, is_end_time=True),
    )


def is_own_adjacent_booking(booking: Any, acting_user_id: Optional[int]) -> bool:
    """
    True when the existing booking belongs to the client making the request.

    Only such bookings may have their buffer zone touched by the request.
    """
    return acting_user_id is not None and booking.user_id == acting_user_id


def _counts(booking: Any, exclude_booking_id: Optional[int]) -> bool:
    if exclude_booking_id is not None and booking.id == exclude_booking_id:
        return False
    return getattr(booking, "status", None) != BookingStatus.CANCELLED.value


def blocked_ranges(
    bookings: Iterable[Any], buffer_minutes: int, exclude_booking_id: Optional[int] = None
) -> List[Range]:
    """Buffered ranges occupied by the given bookings, sorted by start."""
    ranges = []
    for booking in bookings:
        if not _counts(booking, exclude_booking_id):
            continue
        start, end = booking_range(booking)
        ranges.append((start - buffer_minutes, end + buffer_minutes))
    return sorted(ranges)


def available_slots(
    candidates: Iterable[Slot],
    bookings: Iterable[Any],
    buffer_minutes: int,
    exclude_booking_id: Optional[int] = None,
) -> List[Slot]:
    """Drop every candidate overlapping a booking widened by the buffer on both sides."""
    blocked = blocked_ranges(bookings, buffer_minutes, exclude_booking_id)
    return [
        slot for slot in candidates if not any(slot.overlaps(lo, hi) for lo, hi in blocked)
    ]


def find_conflict(
    requested: Slot,
    bookings: Iterable[Any],
    buffer_minutes: int,
    acting_user_id: Optional[int] = None,
    exclude_booking_id: Optional[int] = None,
) -> Optional[Conflict]:
    """First booking that forbids the requested interval, or None when it is free."""
    buffer_hit: Optional[Conflict] = None
    for booking in bookings:
        if not _counts(booking, exclude_booking_id):
            continue
        start, end = booking_range(booking)
        if requested.overlaps(start, end):
            return Conflict(booking.id, start, end, OVERLAP, buffer_minutes)
        if (
            buffer_hit is None
            and buffer_minutes > 0
            and requested.overlaps(start - buffer_minutes, end + buffer_minutes)
            and not is_own_adjacent_booking(booking, acting_user_id)
        ):
            buffer_hit = Conflict(booking.id, start, end, BUFFER, buffer_minutes)
    return buffer_hit


class ConflictResolver(BaseService):
    """Validates requested intervals against the bookings stored for a court/day."""

    def __init__(self, db: Session, booking_repository: Optional[BookingRepository] = None):
        super().__init__(db)
        self.booking_repository = booking_repository or RepositoryFactory.create_booking_repository(db)

    def available_slots(
        self,
        candidates: Iterable[Slot],
        bookings: Iterable[Any],
        buffer_minutes: int,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Slot]:
        return available_slots(candidates, bookings, buffer_minutes, exclude_booking_id)

    def find_conflict(
        self,
        court: Court,
        day: date,
        requested: Slot,
        acting_user_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[Conflict]:
        bookings = self.booking_repository.get_active_for_court_day(court.id, day, exclude_booking_id)
        conflict = find_conflict(
            requested, bookings, court.buffer_minutes, acting_user_id, exclude_booking_id
        )
        if conflict is not None:
            prometheus_metrics.inc_slot_conflict(conflict.reason)
            self.logger.info(
                "Slot conflict",
                extra={
                    "court_id": court.id,
                    "date": day.isoformat(),
                    "requested": str(requested),
                    "conflicting_booking_id": conflict.booking_id,
                    "reason": conflict.reason,
                },
            )
        return conflict

    @BaseService.measure_operation("check_availability")
    def check_availability(
        self,
        court: Court,
        day: date,
        start: int,
        end: int,
        acting_user_id: Optional[int] = None,
        exclude_booking_id: Optional[int] = None,
    ) -> Optional[str]:
        """
        Validate one interval on a court/day.

        Returns:
            A human-readable conflict message, or None when the interval is free
        """
        requested = Slot(start, end)
        conflict = self.find_conflict(court, day, requested, acting_user_id, exclude_booking_id)
        return conflict.message(requested) if conflict else None
