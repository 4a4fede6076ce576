from __future__ import annotations

from datetime import date, time, timedelta
from typing import Callable

import pytest
from sqlalchemy.orm import Session

from courtbook.core.config import settings
from courtbook.core.exceptions import NotFoundException, ValidationException
from courtbook.models import Court, CourtAvailability, Tenant, User
from courtbook.services.availability_service import AvailabilityService


@pytest.fixture
def service(db: Session) -> AvailabilityService:
    return AvailabilityService(db)


def _labels(slots):
    return [str(slot) for slot in slots]


class TestAvailableSlots:
    def test_open_day_lists_every_slot(
        self, service: AvailabilityService, tenant: Tenant, open_court: Court, future_day: date
    ) -> None:
        slots = service.get_available_slots(tenant.id, open_court.id, future_day)

        assert len(slots) == 14
        assert str(slots[0]) == "08:00-09:00"

    def test_day_without_rules_is_closed(
        self, service: AvailabilityService, tenant: Tenant, court: Court, future_day: date
    ) -> None:
        assert service.get_available_slots(tenant.id, court.id, future_day) == []

    def test_booked_slot_is_removed(
        self,
        service: AvailabilityService,
        tenant: Tenant,
        open_court: Court,
        player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        make_booking(open_court, player, future_day, time(10, 0), time(11, 0))

        slots = service.get_available_slots(tenant.id, open_court.id, future_day)

        assert len(slots) == 13
        assert "10:00-11:00" not in _labels(slots)

    def test_cancelled_booking_does_not_block(
        self,
        service: AvailabilityService,
        tenant: Tenant,
        open_court: Court,
        player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        make_booking(open_court, player, future_day, time(10, 0), time(11, 0), status="cancelled")

        assert len(service.get_available_slots(tenant.id, open_court.id, future_day)) == 14

    def test_buffer_blocks_neighbouring_slots(
        self,
        db: Session,
        service: AvailabilityService,
        tenant: Tenant,
        make_court: Callable,
        open_every_day: Callable,
        player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        court = make_court(buffer=10)
        open_every_day(court)
        make_booking(court, player, future_day, time(10, 0), time(11, 0))

        labels = _labels(service.get_available_slots(tenant.id, court.id, future_day))

        assert "09:00-10:00" not in labels
        assert "11:00-12:00" not in labels
        assert "12:00-13:00" in labels

    def test_excluded_booking_frees_its_own_slot(
        self,
        service: AvailabilityService,
        tenant: Tenant,
        open_court: Court,
        player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        booking = make_booking(open_court, player, future_day, time(10, 0), time(11, 0))

        slots = service.get_available_slots(tenant.id, open_court.id, future_day, exclude_booking_id=booking.id)

        assert "10:00-11:00" in _labels(slots)

    def test_realign_after_bookings(
        self,
        service: AvailabilityService,
        tenant: Tenant,
        make_court: Callable,
        open_every_day: Callable,
        player: User,
        future_day: date,
        make_booking: Callable,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        court = make_court(buffer=10)
        open_every_day(court, time(8, 0), time(12, 0))
        make_booking(court, player, future_day, time(8, 0), time(9, 0))
        monkeypatch.setattr(settings, "slot_realign_after_bookings", True)

        labels = _labels(service.get_available_slots(tenant.id, court.id, future_day))

        assert labels == ["09:10-10:10", "10:10-11:10"]

    def test_court_of_another_tenant_is_not_found(
        self,
        service: AvailabilityService,
        other_tenant: Tenant,
        open_court: Court,
        future_day: date,
    ) -> None:
        with pytest.raises(NotFoundException):
            service.get_available_slots(other_tenant.id, open_court.id, future_day)


class TestAvailableDates:
    def test_every_open_day_is_listed(
        self, service: AvailabilityService, tenant: Tenant, open_court: Court, today: date
    ) -> None:
        start = today + timedelta(days=1)
        end = today + timedelta(days=7)

        dates = service.get_available_dates(tenant.id, open_court.id, start, end)

        assert dates == [start + timedelta(days=i) for i in range(7)]

    def test_full_day_blackout_removes_the_date(
        self,
        db: Session,
        service: AvailabilityService,
        tenant: Tenant,
        open_court: Court,
        today: date,
    ) -> None:
        closed = today + timedelta(days=3)
        db.add(
            CourtAvailability(
                tenant_id=tenant.id,
                court_id=open_court.id,
                specific_date=closed,
                start_time=time(0, 0),
                end_time=time(0, 0),
                is_available=False,
            )
        )
        db.commit()

        dates = service.get_available_dates(
            tenant.id, open_court.id, today + timedelta(days=1), today + timedelta(days=5)
        )

        assert closed not in dates
        assert len(dates) == 4

    def test_fully_booked_day_is_removed(
        self,
        service: AvailabilityService,
        tenant: Tenant,
        make_court: Callable,
        open_every_day: Callable,
        player: User,
        today: date,
        make_booking: Callable,
    ) -> None:
        court = make_court()
        open_every_day(court, time(8, 0), time(10, 0))
        full = today + timedelta(days=2)
        make_booking(court, player, full, time(8, 0), time(10, 0))

        dates = service.get_available_dates(tenant.id, court.id, full, full + timedelta(days=1))

        assert dates == [full + timedelta(days=1)]

    def test_past_days_are_skipped(
        self, service: AvailabilityService, tenant: Tenant, open_court: Court, today: date
    ) -> None:
        dates = service.get_available_dates(tenant.id, open_court.id, today - timedelta(days=5), today)

        assert dates == [today]

    def test_inverted_range_is_rejected(
        self, service: AvailabilityService, tenant: Tenant, open_court: Court, today: date
    ) -> None:
        with pytest.raises(ValidationException) as exc:
            service.get_available_dates(tenant.id, open_court.id, today, today - timedelta(days=1))

        assert exc.value.code == "INVALID_DATE_RANGE"

    def test_range_longer_than_ninety_days_is_rejected(
        self, service: AvailabilityService, tenant: Tenant, open_court: Court, today: date
    ) -> None:
        with pytest.raises(ValidationException) as exc:
            service.get_available_dates(tenant.id, open_court.id, today, today + timedelta(days=91))

        assert exc.value.code == "DATE_RANGE_TOO_LONG"

    def test_ninety_day_range_is_accepted(
        self, service: AvailabilityService, tenant: Tenant, open_court: Court, today: date
    ) -> None:
        dates = service.get_available_dates(tenant.id, open_court.id, today + timedelta(days=1), today + timedelta(days=91))

        assert len(dates) == 91

    def test_inactive_court_is_not_found(
        self, service: AvailabilityService, tenant: Tenant, make_court: Callable, today: date
    ) -> None:
        court = make_court(active=False)

        with pytest.raises(NotFoundException):
            service.get_available_dates(tenant.id, court.id, today, today + timedelta(days=1))


class TestOpeningHours:
    def test_interval_inside_window(self, service: AvailabilityService, open_court: Court, future_day: date) -> None:
        assert service.is_within_opening_hours(open_court, future_day, 10 * 60, 11 * 60)

    def test_interval_crossing_closing_time(
        self, service: AvailabilityService, open_court: Court, future_day: date
    ) -> None:
        assert not service.is_within_opening_hours(open_court, future_day, 21 * 60 + 30, 22 * 60 + 30)

    def test_interval_before_opening(self, service: AvailabilityService, open_court: Court, future_day: date) -> None:
        assert not service.is_within_opening_hours(open_court, future_day, 6 * 60, 7 * 60)
