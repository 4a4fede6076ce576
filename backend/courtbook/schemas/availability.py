# backend/courtbook/schemas/availability.py
"""Availability response schemas."""

from datetime import date
from typing import List, Optional

from pydantic import Field

from .base import StandardizedModel


class SlotResponse(StandardizedModel):
    """One bookable slot in UTC wall-clock time, plus optional local labels."""

    start: str = Field(description="Start time (HH:MM, UTC)")
    end: str = Field(description="End time (HH:MM, UTC)")
    local_start: Optional[str] = Field(default=None, description="Start time in the requested timezone")
    local_end: Optional[str] = Field(default=None, description="End time in the requested timezone")


class AvailableSlotsResponse(StandardizedModel):
    date: date
    court_id: int
    slots: List[SlotResponse]
    count: int
    interval_minutes: int
    buffer_minutes: int
    timezone: Optional[str] = None


class AvailableDatesResponse(StandardizedModel):
    court_id: int
    start_date: date
    end_date: date
    dates: List[date]
    count: int
