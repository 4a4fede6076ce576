# backend/courtbook/services/availability_service.py
"""
Availability Service for the court booking platform.

Answers "what can still be booked on this court": effective rules from the
rule store, candidate slots from the generator, and the conflict filter
over the court's existing bookings.
"""

from datetime import date, timedelta
from typing import Any, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import utc_today
from ..models.court import Court
from ..repositories import RepositoryFactory
from .base import BaseService
from .conflict_resolver import available_slots, blocked_ranges
from .slot_generator import Slot, SlotGenerator, blackout_ranges, rule_breaks, rule_window


class AvailabilityService(BaseService):
    """Computes bookable slots and dates for a court."""

    def __init__(self, db: Session, slot_generator: Optional[SlotGenerator] = None):
        super().__init__(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.slot_generator = slot_generator or SlotGenerator()

    def get_court(self, tenant_id: int, court_id: int, *, active_only: bool = False) -> Court:
        court = self.court_repository.get_for_tenant(tenant_id, court_id)
        if court is None or (active_only and not court.status):
            raise NotFoundException("Court not found", code="COURT_NOT_FOUND", details={"court_id": court_id})
        return court

    def _slots_for(
        self,
        court: Court,
        rules: Sequence[Any],
        bookings: Sequence[Any],
        exclude_booking_id: Optional[int],
    ) -> List[Slot]:
        buffer = court.buffer_minutes
        realign_on = None
        if settings.slot_realign_after_bookings:
            realign_on = blocked_ranges(bookings, buffer, exclude_booking_id)
        candidates = self.slot_generator.generate(rules, court.interval_minutes, realign_on=realign_on)
        return available_slots(candidates, bookings, buffer, exclude_booking_id)

    @BaseService.measure_operation("get_available_slots")
    def get_available_slots(
        self,
        tenant_id: int,
        court_id: int,
        day: date,
        exclude_booking_id: Optional[int] = None,
    ) -> List[Slot]:
        """
        Bookable slots for a court on one date, ordered by start time.

        Args:
            exclude_booking_id: booking whose own reservation should not block
                slots (a client editing that booking)
        """
        court = self.get_court(tenant_id, court_id)
        return self.get_slots_for_court(court, day, exclude_booking_id)

    def get_slots_for_court(
        self, court: Court, day: date, exclude_booking_id: Optional[int] = None
    ) -> List[Slot]:
        rules = self.availability_repository.rules_for(court, day)
        if not rules:
            return []
        bookings = self.booking_repository.get_active_for_court_day(court.id, day)
        return self._slots_for(court, rules, bookings, exclude_booking_id)

    @BaseService.measure_operation("get_available_dates")
    def get_available_dates(
        self, tenant_id: int, court_id: int, start_date: date, end_date: date
    ) -> List[date]:
        """
        Dates in [start_date, end_date] with at least one bookable slot.

        Past dates are skipped. The range may span at most
        max_available_dates_range_days days.

        Raises:
            ValidationException: if the range is inverted or too long
            NotFoundException: if the court is unknown or inactive
        """
        if end_date < start_date:
            raise ValidationException(
                "end_date must be on or after start_date",
                code="INVALID_DATE_RANGE",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        max_days = settings.max_available_dates_range_days
        if (end_date - start_date).days > max_days:
            raise ValidationException(
                f"The date range cannot exceed {max_days} days",
                code="DATE_RANGE_TOO_LONG",
                details={"max_days": max_days},
            )

        court = self.get_court(tenant_id, court_id, active_only=True)
        first_day = max(start_date, utc_today())
        if first_day > end_date:
            return []

        rules_by_day = self.availability_repository.rules_for_range(court, first_day, end_date)
        bookings_by_day = self.booking_repository.get_active_for_court_range(court.id, first_day, end_date)

        dates: List[date] = []
        day = first_day
        while day <= end_date:
            rules = rules_by_day.get(day) or []
            if rules and self._slots_for(court, rules, bookings_by_day.get(day, []), None):
                dates.append(day)
            day += timedelta(days=1)
        return dates

    def is_within_opening_hours(self, court: Court, day: date, start: int, end: int) -> bool:
        """
        True when [start, end) lies inside one open window of the court's
        effective rules and touches none of its breaks or blackouts.
        """
        rules = self.availability_repository.rules_for(court, day)
        blackouts = blackout_ranges(rules)
        for rule in rules:
            if not rule.is_available:
                continue
            window_start, window_end = rule_window(rule)
            if not (window_start <= start and end <= window_end):
                continue
            closed = rule_breaks(rule) + blackouts
            if not any(start < hi and end > lo for lo, hi in closed):
                return True
        return False
