# backend/courtbook/api/dependencies.py
"""
FastAPI dependencies: database session, tenant resolution and services.

Authentication is handled upstream; the tenant comes from the path.
"""

import logging
from typing import Generator, Optional

import pytz
from fastapi import Depends, Path, Query
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException
from ..core.timezone_utils import get_timezone
from ..database import get_db as original_get_db
from ..models.tenant import Tenant
from ..repositories import RepositoryFactory
from ..services.availability_service import AvailabilityService
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Yields:
        Database session that will be closed after use
    """
    yield from original_get_db()


def get_tenant(
    tenant_id: int = Path(..., ge=1, description="Tenant id"),
    db: Session = Depends(get_db),
) -> Tenant:
    tenant = RepositoryFactory.create_tenant_repository(db).get_by_id(tenant_id)
    if tenant is None:
        raise NotFoundException("Tenant not found", code="TENANT_NOT_FOUND", details={"tenant_id": tenant_id})
    return tenant


def get_request_timezone(
    timezone: Optional[str] = Query(None, description="IANA timezone for local time labels"),
) -> Optional[pytz.BaseTzInfo]:
    return get_timezone(timezone)


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)
