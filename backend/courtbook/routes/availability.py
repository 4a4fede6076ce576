# backend/courtbook/routes/availability.py
"""
Court availability routes - API v1

Endpoints:
    GET /courts/{court_id}/slots - Bookable slots for one date
    GET /courts/{court_id}/available-dates - Dates with at least one bookable slot
"""

import asyncio
from datetime import date
import logging
from typing import NoReturn, Optional

import pytz
from fastapi import APIRouter, Depends, Path, Query

from ..api.dependencies import get_availability_service, get_request_timezone, get_tenant
from ..core.exceptions import DomainException
from ..core.timezone_utils import local_label
from ..models.tenant import Tenant
from ..schemas.availability import AvailableDatesResponse, AvailableSlotsResponse, SlotResponse
from ..services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


@router.get("/courts/{court_id}/slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    court_id: int = Path(..., ge=1),
    day: date = Query(..., alias="date", description="Date to inspect (YYYY-MM-DD, UTC)"),
    exclude_booking_id: Optional[int] = Query(
        None, description="Treat this booking's own slot as free (editing flow)"
    ),
    tenant: Tenant = Depends(get_tenant),
    tz: Optional[pytz.BaseTzInfo] = Depends(get_request_timezone),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailableSlotsResponse:
    """List the slots that can still be booked on a court for one date."""
    try:
        court = await asyncio.to_thread(availability_service.get_court, tenant.id, court_id)
        slots = await asyncio.to_thread(
            availability_service.get_slots_for_court, court, day, exclude_booking_id
        )
    except DomainException as e:
        handle_domain_exception(e)

    items = [
        SlotResponse(
            start=slot.start_label,
            end=slot.end_label,
            local_start=local_label(day, slot.start, tz) if tz else None,
            local_end=local_label(day, slot.end, tz) if tz else None,
        )
        for slot in slots
    ]
    return AvailableSlotsResponse(
        date=day,
        court_id=court.id,
        slots=items,
        count=len(items),
        interval_minutes=court.interval_minutes,
        buffer_minutes=court.buffer_minutes,
        timezone=tz.zone if tz else None,
    )


@router.get("/courts/{court_id}/available-dates", response_model=AvailableDatesResponse)
async def get_available_dates(
    court_id: int = Path(..., ge=1),
    start_date: date = Query(...),
    end_date: date = Query(...),
    tenant: Tenant = Depends(get_tenant),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> AvailableDatesResponse:
    """Dates in the range that still have at least one bookable slot."""
    try:
        dates = await asyncio.to_thread(
            availability_service.get_available_dates, tenant.id, court_id, start_date, end_date
        )
    except DomainException as e:
        handle_domain_exception(e)
    return AvailableDatesResponse(
        court_id=court_id,
        start_date=start_date,
        end_date=end_date,
        dates=dates,
        count=len(dates),
    )
