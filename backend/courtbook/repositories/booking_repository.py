# backend/courtbook/repositories/booking_repository.py
"""
Booking Repository for the court booking platform.

Holds every booking query the engine needs: tenant-scoped lookups, the
per-court/day occupancy used by conflict checks, filtered listings and the
pending-presence query. Writes go through BaseRepository and never commit.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.enums import BookingStatus, PresenceFilter
from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.tenant import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingFilters:
    """Listing filters; every non-empty field narrows the result (AND)."""

    status: Optional[str] = None
    payment_status: Optional[str] = None
    on_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    court_id: Optional[int] = None
    client_id: Optional[int] = None
    present: Optional[PresenceFilter] = None
    search: Optional[str] = None


class BookingRepository(BaseRepository[Booking]):
    """Repository for booking data access."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_for_tenant(self, tenant_id: int, booking_id: int) -> Optional[Booking]:
        try:
            return (
                self.db.query(Booking)
                .options(joinedload(Booking.client))
                .filter(Booking.id == booking_id, Booking.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def get_active_for_court_day(
        self, court_id: int, day: date, exclude_booking_id: Optional[int] = None
    ) -> List[Booking]:
        """Non-cancelled bookings on a court for one date, ordered by start time."""
        try:
            query = self.db.query(Booking).filter(
                Booking.court_id == court_id,
                Booking.start_date == day,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            if exclude_booking_id is not None:
                query = query.filter(Booking.id != exclude_booking_id)
            return query.order_by(Booking.start_time).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading bookings for court {court_id} on {day}: {str(e)}")
            raise RepositoryException(f"Failed to load court bookings: {str(e)}")

    def get_active_for_court_range(
        self, court_id: int, start_date: date, end_date: date
    ) -> Dict[date, List[Booking]]:
        """Non-cancelled bookings on a court grouped by date."""
        try:
            rows = (
                self.db.query(Booking)
                .filter(
                    Booking.court_id == court_id,
                    Booking.start_date.between(start_date, end_date),
                    Booking.status != BookingStatus.CANCELLED.value,
                )
                .order_by(Booking.start_date, Booking.start_time)
                .all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking range for court {court_id}: {str(e)}")
            raise RepositoryException(f"Failed to load court bookings: {str(e)}")

        grouped: Dict[date, List[Booking]] = {}
        for booking in rows:
            grouped.setdefault(booking.start_date, []).append(booking)
        return grouped

    def _filtered(self, tenant_id: int, filters: BookingFilters) -> Query:
        query = self.db.query(Booking).filter(Booking.tenant_id == tenant_id)

        if filters.status:
            query = query.filter(Booking.status == filters.status)
        if filters.payment_status:
            query = query.filter(Booking.payment_status == filters.payment_status)
        if filters.on_date:
            query = query.filter(Booking.start_date == filters.on_date)
        if filters.start_date:
            query = query.filter(Booking.start_date >= filters.start_date)
        if filters.end_date:
            query = query.filter(Booking.start_date <= filters.end_date)
        if filters.court_id:
            query = query.filter(Booking.court_id == filters.court_id)
        if filters.client_id:
            query = query.filter(Booking.user_id == filters.client_id)

        if filters.present == PresenceFilter.PRESENT:
            query = query.filter(Booking.present.is_(True))
        elif filters.present == PresenceFilter.ABSENT:
            query = query.filter(Booking.present.is_(False))
        elif filters.present == PresenceFilter.UNCHECKED:
            query = query.filter(Booking.present.is_(None))

        if filters.search and filters.search.strip():
            pattern = f"%{filters.search.strip()}%"
            query = query.join(User, User.id == Booking.user_id).filter(User.name.ilike(pattern))

        return query

    def _page(self, query: Query, page: int, per_page: int) -> Tuple[List[Booking], int]:
        total = query.count()
        items = (
            query.options(joinedload(Booking.client))
            .order_by(Booking.start_date.desc(), Booking.start_time.desc(), Booking.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return items, total

    def list_filtered(
        self, tenant_id: int, filters: BookingFilters, *, page: int = 1, per_page: int = 20
    ) -> Tuple[List[Booking], int]:
        """Return one page of bookings (latest first) and the total match count."""
        try:
            return self._page(self._filtered(tenant_id, filters), page, per_page)
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def list_pending_presence(
        self,
        tenant_id: int,
        filters: BookingFilters,
        now: datetime,
        *,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Booking], int]:
        """
        Bookings not marked present whose interval has started or ended.

        A booking qualifies when its start date is before today, or it is
        today and its start time or end time has already passed. `now` is a
        naive or aware UTC datetime.
        """
        today = now.date()
        current_time = now.time().replace(tzinfo=None)
        try:
            query = self._filtered(tenant_id, filters).filter(
                or_(Booking.present.is_(None), Booking.present.is_(False)),
                or_(
                    Booking.start_date < today,
                    and_(Booking.start_date == today, Booking.start_time <= current_time),
                    and_(
                        Booking.end_date == today,
                        Booking.end_time != time(0, 0),
                        Booking.end_time <= current_time,
                    ),
                ),
            )
            return self._page(query, page, per_page)
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading pending presence for tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to list pending presence: {str(e)}")
