from __future__ import annotations

from datetime import date, time, timedelta
from types import SimpleNamespace
from typing import Optional

from courtbook.core.enums import Weekday
from courtbook.repositories.availability_repository import (
    COURT_DATE,
    COURT_RECURRING,
    TYPE_DATE,
    TYPE_RECURRING,
    resolve_effective_rules,
    rule_level,
)

COURT_ID = 7
COURT_TYPE_ID = 3
DAY = date(2030, 5, 14)


def _rule(
    *,
    court_id: Optional[int] = None,
    specific_date: Optional[date] = None,
    start: time = time(8, 0),
    end: time = time(22, 0),
    available: bool = True,
    day: Optional[date] = DAY,
):
    return SimpleNamespace(
        court_id=court_id,
        court_type_id=None if court_id else COURT_TYPE_ID,
        specific_date=specific_date,
        day_of_week_recurring=None if specific_date else Weekday.for_date(day).value,
        start_time=start,
        end_time=end,
        is_available=available,
    )


class TestRuleLevel:
    def test_levels(self) -> None:
        assert rule_level(_rule(court_id=COURT_ID, specific_date=DAY), COURT_ID) == COURT_DATE
        assert rule_level(_rule(specific_date=DAY), COURT_ID) == TYPE_DATE
        assert rule_level(_rule(court_id=COURT_ID), COURT_ID) == COURT_RECURRING
        assert rule_level(_rule(), COURT_ID) == TYPE_RECURRING

    def test_rule_for_another_court_does_not_apply(self) -> None:
        assert rule_level(_rule(court_id=COURT_ID + 1), COURT_ID) is None


class TestResolveEffectiveRules:
    def test_court_date_rule_beats_everything(self) -> None:
        specific = _rule(court_id=COURT_ID, specific_date=DAY, start=time(10, 0), end=time(12, 0))
        rules = [_rule(), _rule(court_id=COURT_ID), _rule(specific_date=DAY), specific]

        assert resolve_effective_rules(rules, COURT_ID, DAY) == [specific]

    def test_type_date_rule_beats_recurring_court_rule(self) -> None:
        type_date = _rule(specific_date=DAY, start=time(9, 0))
        rules = [_rule(court_id=COURT_ID), type_date]

        assert resolve_effective_rules(rules, COURT_ID, DAY) == [type_date]

    def test_court_recurring_beats_type_recurring(self) -> None:
        court_rule = _rule(court_id=COURT_ID, start=time(7, 0))

        assert resolve_effective_rules([_rule(), court_rule], COURT_ID, DAY) == [court_rule]

    def test_every_opening_of_the_winning_level_is_kept(self) -> None:
        morning = _rule(start=time(8, 0), end=time(12, 0))
        evening = _rule(start=time(16, 0), end=time(22, 0))

        assert resolve_effective_rules([evening, morning], COURT_ID, DAY) == [morning, evening]

    def test_more_specific_blackout_applies_to_recurring_openings(self) -> None:
        opening = _rule()
        blackout = _rule(court_id=COURT_ID, specific_date=DAY, start=time(12, 0), end=time(14, 0), available=False)

        assert resolve_effective_rules([opening, blackout], COURT_ID, DAY) == [opening, blackout]

    def test_less_specific_blackout_is_ignored(self) -> None:
        opening = _rule(specific_date=DAY)
        blackout = _rule(start=time(12, 0), end=time(14, 0), available=False)

        assert resolve_effective_rules([opening, blackout], COURT_ID, DAY) == [opening]

    def test_rules_for_other_days_are_ignored(self) -> None:
        other_day = _rule(day=DAY + timedelta(days=1))
        dated_elsewhere = _rule(specific_date=DAY + timedelta(days=7))

        assert resolve_effective_rules([other_day, dated_elsewhere], COURT_ID, DAY) == []

    def test_only_blackouts_means_closed(self) -> None:
        assert resolve_effective_rules([_rule(available=False)], COURT_ID, DAY) == []
