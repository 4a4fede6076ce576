# backend/courtbook/routes/bookings.py
"""
Booking routes - API v1

Tenant-scoped booking endpoints. All business logic is delegated to
BookingService.

Endpoints:
    GET /bookings - List bookings with filters and pagination
    GET /bookings/pending-presence - Started/ended bookings not marked present
    GET /bookings/{booking_id} - Booking details
    POST /bookings - Create booking(s) as the business
    POST /mobile/bookings - Create booking(s) from the mobile app
    PATCH /bookings/{booking_id} - Update (may split into new bookings)
    POST /bookings/{booking_id}/cancel - Cancel a booking
    POST /bookings/{booking_id}/presence - Record attendance
    DELETE /bookings/{booking_id} - Delete a booking
"""

import asyncio
from datetime import date
import logging
from typing import NoReturn, Optional

import pytz
from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from ..api.dependencies import get_booking_service, get_request_timezone, get_tenant
from ..core.enums import BookingContext, BookingStatus, PaymentStatus, PresenceFilter
from ..core.exceptions import DomainException
from ..core.timezone_utils import local_label
from ..models.booking import Booking
from ..models.tenant import Tenant
from ..repositories.booking_repository import BookingFilters
from ..schemas.base_responses import PaginatedResponse
from ..schemas.booking import (
    BookingBatchResponse,
    BookingCreate,
    BookingResponse,
    BookingUpdate,
    MobileBookingCreate,
    PresenceUpdate,
)
from ..services.booking_service import BookingBatch, BookingService
from ..utils.time_utils import time_to_minutes

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    raise exc.to_http_exception()


def get_booking_filters(
    status: Optional[BookingStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    on_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    court_id: Optional[int] = Query(None, ge=1),
    client_id: Optional[int] = Query(None, ge=1),
    present: Optional[PresenceFilter] = Query(None, description="true, false or null (unchecked)"),
    search: Optional[str] = Query(None, max_length=100, description="Matches the client name"),
) -> BookingFilters:
    return BookingFilters(
        status=status.value if status else None,
        payment_status=payment_status.value if payment_status else None,
        on_date=on_date,
        start_date=start_date,
        end_date=end_date,
        court_id=court_id,
        client_id=client_id,
        present=present,
        search=search,
    )


def render_booking(booking: Booking, tz: Optional[pytz.BaseTzInfo] = None) -> BookingResponse:
    response = BookingResponse.model_validate(booking)
    if tz is not None:
        response.local_start = local_label(booking.start_date, time_to_minutes(booking.start_time), tz)
        response.local_end = local_label(
            booking.start_date, time_to_minutes(booking.end_time, is_end_time=True), tz
        )
    return response


def render_batch(batch: BookingBatch, tz: Optional[pytz.BaseTzInfo] = None) -> BookingBatchResponse:
    return BookingBatchResponse(
        booking=render_booking(batch.primary, tz),
        siblings=[render_booking(row, tz) for row in batch.siblings],
    )


@router.get("/bookings", response_model=PaginatedResponse[BookingResponse])
async def list_bookings(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1),
    filters: BookingFilters = Depends(get_booking_filters),
    tenant: Tenant = Depends(get_tenant),
    tz: Optional[pytz.BaseTzInfo] = Depends(get_request_timezone),
    booking_service: BookingService = Depends(get_booking_service),
) -> PaginatedResponse[BookingResponse]:
    """List bookings matching all given filters, latest first."""
    try:
        items, total = await asyncio.to_thread(
            booking_service.list_bookings, tenant, filters, page, per_page
        )
    except DomainException as e:
        handle_domain_exception(e)
    page, size = booking_service.page_args(page, per_page)
    return PaginatedResponse[BookingResponse].build(
        [render_booking(item, tz) for item in items], total, page, size
    )


@router.get("/bookings/pending-presence", response_model=PaginatedResponse[BookingResponse])
async def list_pending_presence(
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1),
    filters: BookingFilters = Depends(get_booking_filters),
    tenant: Tenant = Depends(get_tenant),
    tz: Optional[pytz.BaseTzInfo] = Depends(get_request_timezone),
    booking_service: BookingService = Depends(get_booking_service),
) -> PaginatedResponse[BookingResponse]:
    """Bookings that have started or ended but are not marked present."""
    try:
        items, total = await asyncio.to_thread(
            booking_service.pending_presence, tenant, filters, page, per_page
        )
    except DomainException as e:
        handle_domain_exception(e)
    page, size = booking_service.page_args(page, per_page)
    return PaginatedResponse[BookingResponse].build(
        [render_booking(item, tz) for item in items], total, page, size
    )


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int = Path(..., ge=1),
    tenant: Tenant = Depends(get_tenant),
    tz: Optional[pytz.BaseTzInfo] = Depends(get_request_timezone),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, tenant, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return render_booking(booking, tz)


@router.post(
    "/bookings",
    response_model=BookingBatchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    payload: BookingCreate = Body(...),
    tenant: Tenant = Depends(get_tenant),
    tz: Optional[pytz.BaseTzInfo] = Depends(get_request_timezone),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingBatchResponse:
    """
    Create a booking on behalf of a client.

    A slot list that is not contiguous is split into one booking per block;
    the first is returned as `booking`, the rest as `siblings`.
    """
    try:
        batch = await asyncio.to_thread(
            booking_service.create_booking, tenant, payload, BookingContext.BUSINESS
        )
    except DomainException as e:
        handle_domain_exception(e)
    return render_batch(batch, tz)


@router.post(
    "/mobile/bookings",
    response_model=BookingBatchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_mobile_booking(
    payload: MobileBookingCreate = Body(...),
    tenant: Tenant = Depends(get_tenant),
    tz: Optional[pytz.BaseTzInfo] = Depends(get_request_timezone),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingBatchResponse:
    """Client-initiated booking; pending unless the tenant auto-confirms."""
    try:
        data = payload.to_booking_create()
        batch = await asyncio.to_thread(
            booking_service.create_booking, tenant, data, BookingContext.MOBILE
        )
    except DomainException as e:
        handle_domain_exception(e)
    return render_batch(batch, tz)


@router.patch("/bookings/{booking_id}", response_model=BookingBatchResponse)
async def update_booking(
    booking_id: int = Path(..., ge=1),
    payload: BookingUpdate = Body(...),
    tenant: Tenant = Depends(get_tenant),
    tz: Optional[pytz.BaseTzInfo] = Depends(get_request_timezone),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingBatchResponse:
    try:
        batch = await asyncio.to_thread(
            booking_service.update_booking, tenant, booking_id, payload, BookingContext.BUSINESS
        )
    except DomainException as e:
        handle_domain_exception(e)
    return render_batch(batch, tz)


@router.post("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int = Path(..., ge=1),
    tenant: Tenant = Depends(get_tenant),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.cancel_booking, tenant, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return render_booking(booking)


@router.post("/bookings/{booking_id}/presence", response_model=BookingResponse)
async def mark_presence(
    booking_id: int = Path(..., ge=1),
    payload: PresenceUpdate = Body(...),
    tenant: Tenant = Depends(get_tenant),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(
            booking_service.mark_presence, tenant, booking_id, payload.present
        )
    except DomainException as e:
        handle_domain_exception(e)
    return render_booking(booking)


@router.delete(
    "/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_booking(
    booking_id: int = Path(..., ge=1),
    tenant: Tenant = Depends(get_tenant),
    booking_service: BookingService = Depends(get_booking_service),
) -> Response:
    try:
        await asyncio.to_thread(booking_service.delete_booking, tenant, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
