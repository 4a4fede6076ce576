# backend/courtbook/models/availability.py
"""
Court availability rules.

A rule is scoped either to one court (court_id set) or to every court of a
court type (court_id null, court_type_id set), and applies either to a
weekday (day_of_week_recurring) or to one calendar date (specific_date).
Rules with is_available=False are blackouts rather than openings.

The booking engine only reads these rows.
"""

from typing import Any, List, Optional, Tuple

from sqlalchemy import Boolean, CheckConstraint, Column, Date, ForeignKey, Index, Integer, String, Text, Time
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON

from ..database import Base


class CourtAvailability(Base):
    """An opening or blackout window for a court or a court type."""

    __tablename__ = "court_availabilities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    court_id = Column(Integer, ForeignKey("courts.id", ondelete="CASCADE"), nullable=True)
    court_type_id = Column(Integer, ForeignKey("court_types.id", ondelete="CASCADE"), nullable=True)

    day_of_week_recurring = Column(String(10), nullable=True)
    specific_date = Column(Date, nullable=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    # [{"start": "12:00", "end": "13:00"}, ...]
    breaks = Column(JSONB(astext_type=Text()).with_variant(JSON(), "sqlite"), nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "court_id IS NOT NULL OR court_type_id IS NOT NULL",
            name="ck_court_availabilities_scope",
        ),
        CheckConstraint(
            "(day_of_week_recurring IS NULL) <> (specific_date IS NULL)",
            name="ck_court_availabilities_recurring_xor_date",
        ),
        Index("ix_court_availabilities_court_date", "court_id", "specific_date"),
        Index("ix_court_availabilities_type_date", "court_type_id", "specific_date"),
    )

    def break_pairs(self) -> List[Tuple[str, str]]:
        """Return breaks as ("HH:MM", "HH:MM") pairs, skipping malformed entries."""
        raw: Optional[Any] = self.breaks
        if not raw:
            return []
        pairs: List[Tuple[str, str]] = []
        for item in raw:
            if isinstance(item, dict) and item.get("start") and item.get("end"):
                pairs.append((str(item["start"]), str(item["end"])))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                pairs.append((str(item[0]), str(item[1])))
        return pairs

    def __repr__(self) -> str:
        scope = f"court={self.court_id}" if self.court_id else f"type={self.court_type_id}"
        when = self.specific_date or self.day_of_week_recurring
        return (
            f"<CourtAvailability {self.id}: {scope} {when} "
            f"{self.start_time}-{self.end_time} available={self.is_available}>"
        )
