from __future__ import annotations

from datetime import time
from types import SimpleNamespace

import pytest

from courtbook.services.conflict_resolver import (
    BUFFER,
    OVERLAP,
    available_slots,
    blocked_ranges,
    find_conflict,
    is_own_adjacent_booking,
)
from courtbook.services.slot_generator import Slot


def _booking(id: int, user_id: int, start: time, end: time, status: str = "confirmed"):
    return SimpleNamespace(id=id, user_id=user_id, start_time=start, end_time=end, status=status)


@pytest.fixture
def existing():
    """User 1 holds 10:00-11:00."""
    return [_booking(1, 1, time(10, 0), time(11, 0))]


class TestFindConflict:
    def test_direct_overlap_is_always_a_conflict(self, existing) -> None:
        conflict = find_conflict(Slot.parse("10:30", "11:30"), existing, 10, acting_user_id=1)

        assert conflict is not None
        assert conflict.reason == OVERLAP
        assert conflict.booking_id == 1
        assert conflict.window == "10:00-11:00"

    def test_own_booking_buffer_may_be_touched(self, existing) -> None:
        assert find_conflict(Slot.parse("11:00", "12:00"), existing, 10, acting_user_id=1) is None

    def test_foreign_booking_buffer_is_a_conflict(self, existing) -> None:
        conflict = find_conflict(Slot.parse("11:00", "12:00"), existing, 10, acting_user_id=2)

        assert conflict is not None
        assert conflict.reason == BUFFER
        assert "10-minute buffer" in conflict.message(Slot.parse("11:00", "12:00"))

    def test_buffer_applies_before_a_booking_too(self, existing) -> None:
        conflict = find_conflict(Slot.parse("09:00", "09:55"), existing, 10, acting_user_id=2)

        assert conflict is not None
        assert conflict.reason == BUFFER

    def test_interval_after_the_buffer_is_free(self, existing) -> None:
        assert find_conflict(Slot.parse("11:10", "12:10"), existing, 10, acting_user_id=2) is None

    def test_no_buffer_allows_back_to_back_for_anyone(self, existing) -> None:
        assert find_conflict(Slot.parse("11:00", "12:00"), existing, 0, acting_user_id=2) is None

    def test_cancelled_bookings_are_ignored(self) -> None:
        bookings = [_booking(1, 1, time(10, 0), time(11, 0), status="cancelled")]

        assert find_conflict(Slot.parse("10:00", "11:00"), bookings, 10, acting_user_id=2) is None

    def test_excluded_booking_is_ignored(self, existing) -> None:
        assert (
            find_conflict(Slot.parse("10:30", "11:30"), existing, 10, acting_user_id=1, exclude_booking_id=1)
            is None
        )

    def test_overlap_wins_over_an_earlier_buffer_hit(self) -> None:
        bookings = [
            _booking(1, 2, time(8, 0), time(9, 0)),
            _booking(2, 2, time(9, 30), time(10, 30)),
        ]

        conflict = find_conflict(Slot.parse("09:05", "10:00"), bookings, 10, acting_user_id=1)

        assert conflict is not None
        assert conflict.reason == OVERLAP
        assert conflict.booking_id == 2


class TestOwnAdjacent:
    @pytest.mark.parametrize(
        "owner, acting, expected",
        [
            (1, 1, True),
            (1, 2, False),
            (1, None, False),
        ],
    )
    def test_matrix(self, owner, acting, expected) -> None:
        booking = _booking(1, owner, time(10, 0), time(11, 0))

        assert is_own_adjacent_booking(booking, acting) is expected


class TestAvailableSlots:
    def test_buffer_is_applied_on_both_sides(self, existing) -> None:
        candidates = [Slot(h * 60, (h + 1) * 60) for h in range(8, 14)]

        free = available_slots(candidates, existing, 10)

        assert [str(slot) for slot in free] == ["08:00-09:00", "12:00-13:00", "13:00-14:00"]

    def test_without_buffer_only_the_booking_is_blocked(self, existing) -> None:
        candidates = [Slot(h * 60, (h + 1) * 60) for h in range(9, 12)]

        free = available_slots(candidates, existing, 0)

        assert [str(slot) for slot in free] == ["09:00-10:00", "11:00-12:00"]

    def test_excluded_booking_frees_its_slot(self, existing) -> None:
        candidates = [Slot(600, 660)]

        assert available_slots(candidates, existing, 10, exclude_booking_id=1) == candidates

    def test_blocked_ranges_are_sorted_and_buffered(self) -> None:
        bookings = [
            _booking(2, 1, time(14, 0), time(15, 0)),
            _booking(1, 1, time(10, 0), time(11, 0)),
            _booking(3, 1, time(12, 0), time(13, 0), status="cancelled"),
        ]

        assert blocked_ranges(bookings, 15) == [(585, 675), (825, 915)]
