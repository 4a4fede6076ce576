# backend/courtbook/services/slot_generator.py
"""
Slot generation from availability rules.

Pure functions: the output depends only on the rules, the interval length
and the extra blocked ranges passed in. Times are minutes since midnight;
an end of 1440 means midnight at the end of the day.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..utils.time_utils import MINUTES_PER_DAY, minutes_to_label, parse_hhmm, time_to_minutes

logger = logging.getLogger(__name__)

Range = Tuple[int, int]


@dataclass(frozen=True, order=True)
class Slot:
    """A [start, end) wall-clock interval in minutes since midnight."""

    start: int
    end: int

    @classmethod
    def parse(cls, start: str, end: str) -> "Slot":
        return cls(parse_hhmm(start), parse_hhmm(end, is_end_time=True))

    @property
    def start_label(self) -> str:
        return minutes_to_label(self.start)

    @property
    def end_label(self) -> str:
        return minutes_to_label(self.end)

    @property
    def duration(self) -> int:
        return self.end - self.start

    def overlaps(self, start: int, end: int) -> bool:
        return self.start < end and self.end > start

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start_label, "end": self.end_label}

    def __str__(self) -> str:
        return f"{self.start_label}-{self.end_label}"


def rule_window(rule: Any) -> Range:
    return (
        time_to_minutes(rule.start_time),
        time_to_minutes(rule.end_time, is_end_time=True),
    )


def rule_breaks(rule: Any) -> List[Range]:
    """Breaks of one rule as minute ranges; unparsable entries are skipped."""
    ranges: List[Range] = []
    pairs = rule.break_pairs() if hasattr(rule, "break_pairs") else []
    for start, end in pairs:
        try:
            ranges.append((parse_hhmm(start), parse_hhmm(end, is_end_time=True)))
        except ValueError:
            logger.warning("Ignoring malformed break %s-%s on rule %s", start, end, getattr(rule, "id", None))
    return ranges


def blackout_ranges(rules: Iterable[Any]) -> List[Range]:
    return [rule_window(rule) for rule in rules if not rule.is_available]


def _first_overlap(start: int, end: int, ranges: Sequence[Range]) -> Optional[Range]:
    for lo, hi in ranges:
        if start < hi and end > lo:
            return (lo, hi)
    return None


def generate_slots(
    rules: Iterable[Any],
    interval_minutes: int,
    breaks: Optional[Sequence[Range]] = None,
    *,
    realign_on: Optional[Sequence[Range]] = None,
) -> List[Slot]:
    """
    Build the candidate slots for one day.

    Each open rule window is walked in interval_minutes steps from its start;
    a slot is emitted while it ends inside the window. Slots touching the
    rule's own breaks, a blackout rule, or one of `breaks` are dropped.

    When realign_on is given, a slot hitting one of those ranges does not
    just get dropped: the walk restarts at the end of that range.

    Returns slots sorted by start time with exact duplicates removed.
    """
    if interval_minutes <= 0:
        raise ValueError("interval_minutes must be positive")

    rules = list(rules)
    shared_blocked: List[Range] = blackout_ranges(rules) + list(breaks or [])
    realign = sorted(realign_on or [])
    slots: List[Slot] = []

    for rule in rules:
        if not rule.is_available:
            continue
        window_start, window_end = rule_window(rule)
        if window_end <= window_start:
            logger.warning("Skipping availability rule %s with empty window", getattr(rule, "id", None))
            continue
        blocked = rule_breaks(rule) + shared_blocked

        cursor = window_start
        while cursor + interval_minutes <= min(window_end, MINUTES_PER_DAY):
            end = cursor + interval_minutes
            zone = _first_overlap(cursor, end, realign)
            if zone is not None:
                cursor = max(zone[1], cursor + 1)
                continue
            if _first_overlap(cursor, end, blocked) is None:
                slots.append(Slot(cursor, end))
            cursor = end

    return sorted(set(slots))


class SlotGenerator:
    """Thin object wrapper so services can swap the generator in tests."""

    def generate(
        self,
        rules: Iterable[Any],
        interval_minutes: int,
        breaks: Optional[Sequence[Range]] = None,
        *,
        realign_on: Optional[Sequence[Range]] = None,
    ) -> List[Slot]:
        return generate_slots(rules, interval_minutes, breaks, realign_on=realign_on)
