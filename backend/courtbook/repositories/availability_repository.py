# backend/courtbook/repositories/availability_repository.py
"""
Availability rule store.

Reads CourtAvailability rows and resolves which of them govern one court on
one date. Precedence, most specific first:

    0. specific_date rules scoped to the court
    1. specific_date rules scoped to the court's type
    2. recurring weekday rules scoped to the court
    3. recurring weekday rules scoped to the court's type

Openings come from the most specific level that has at least one opening;
every rule at that level is used, so a day can have several windows.
Blackouts (is_available=False) apply from that level and any more specific
one, which lets a date-specific blackout cut a recurring window.
"""

from collections import defaultdict
from datetime import date, timedelta
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import Weekday
from ..core.exceptions import RepositoryException
from ..models.availability import CourtAvailability
from ..models.court import Court
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

COURT_DATE, TYPE_DATE, COURT_RECURRING, TYPE_RECURRING = range(4)


def rule_level(rule: CourtAvailability, court_id: int) -> Optional[int]:
    """Precedence level of a rule for the given court, or None if it does not apply."""
    if rule.court_id is not None and rule.court_id != court_id:
        return None
    court_scoped = rule.court_id is not None
    if rule.specific_date is not None:
        return COURT_DATE if court_scoped else TYPE_DATE
    return COURT_RECURRING if court_scoped else TYPE_RECURRING


def _matches_day(rule: CourtAvailability, day: date) -> bool:
    if rule.specific_date is not None:
        return rule.specific_date == day
    return (rule.day_of_week_recurring or "").strip().lower() == Weekday.for_date(day).value


def resolve_effective_rules(
    candidates: Iterable[CourtAvailability], court_id: int, day: date
) -> List[CourtAvailability]:
    """
    Pick the rules that govern court_id on day.

    Returns openings first (ordered by start time) followed by the blackouts
    that apply to them. An empty list means the court is closed that day.
    """
    by_level: Dict[int, List[CourtAvailability]] = defaultdict(list)
    for rule in candidates:
        if not _matches_day(rule, day):
            continue
        level = rule_level(rule, court_id)
        if level is not None:
            by_level[level].append(rule)

    opening_level = next(
        (
            level
            for level in (COURT_DATE, TYPE_DATE, COURT_RECURRING, TYPE_RECURRING)
            if any(rule.is_available for rule in by_level.get(level, []))
        ),
        None,
    )
    if opening_level is None:
        return []

    openings = [rule for rule in by_level[opening_level] if rule.is_available]
    blackouts = [
        rule
        for level in range(opening_level + 1)
        for rule in by_level.get(level, [])
        if not rule.is_available
    ]
    openings.sort(key=lambda rule: (rule.start_time, rule.end_time))
    blackouts.sort(key=lambda rule: (rule.start_time, rule.end_time))
    return openings + blackouts


class AvailabilityRepository(BaseRepository[CourtAvailability]):
    """Read-only access to court availability rules."""

    def __init__(self, db: Session):
        super().__init__(db, CourtAvailability)

    def _scope_filter(self, court: Court):
        return and_(
            CourtAvailability.tenant_id == court.tenant_id,
            or_(
                CourtAvailability.court_id == court.id,
                and_(
                    CourtAvailability.court_id.is_(None),
                    CourtAvailability.court_type_id == court.court_type_id,
                ),
            ),
        )

    def rules_for(self, court: Court, day: date) -> List[CourtAvailability]:
        """Effective rules for one court on one date."""
        try:
            candidates = (
                self.db.query(CourtAvailability)
                .filter(
                    self._scope_filter(court),
                    or_(
                        CourtAvailability.specific_date == day,
                        func.lower(CourtAvailability.day_of_week_recurring)
                        == Weekday.for_date(day).value,
                    ),
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading availability for court {court.id} on {day}: {str(e)}")
            raise RepositoryException(f"Failed to load availability rules: {str(e)}")
        return resolve_effective_rules(candidates, court.id, day)

    def rules_for_range(
        self, court: Court, start_date: date, end_date: date
    ) -> Dict[date, List[CourtAvailability]]:
        """Effective rules for every date in [start_date, end_date], loaded in one query."""
        try:
            candidates = (
                self.db.query(CourtAvailability)
                .filter(
                    self._scope_filter(court),
                    or_(
                        CourtAvailability.specific_date.between(start_date, end_date),
                        CourtAvailability.day_of_week_recurring.isnot(None),
                    ),
                )
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading availability range for court {court.id}: {str(e)}")
            raise RepositoryException(f"Failed to load availability rules: {str(e)}")

        result: Dict[date, List[CourtAvailability]] = {}
        day = start_date
        while day <= end_date:
            result[day] = resolve_effective_rules(candidates, court.id, day)
            day += timedelta(days=1)
        return result
