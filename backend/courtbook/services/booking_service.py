# backend/courtbook/services/booking_service.py
"""
Booking Service for the court booking platform.

Owns the booking lifecycle:
- create: one request may produce several bookings, one per contiguous block
- update: re-validates moved bookings and may split them into new rows
- cancel / delete / presence marking
- listing and the pending-presence query

Create and update hold the court/day lock for their whole transaction and
check availability again once it is held. QR references and domain events
are best-effort: a failure there is logged and never undoes the booking.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
import logging
import math
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from ..core.booking_lock import court_day_locks
from ..core.config import settings
from ..core.enums import BookingContext, BookingStatus, PaymentMethod, PaymentStatus
from ..core.exceptions import (
    GENERIC_ERROR_MESSAGE,
    AlreadyCancelledException,
    DomainException,
    ImmutableBookingException,
    InvalidReferenceException,
    NotFoundException,
    PastBookingException,
    ServiceException,
    SlotConflictException,
    ValidationException,
)
from ..core.timezone_utils import utc_now, utc_today
from ..events import BookingCancelled, BookingCreated, BookingUpdated, EventPublisher
from ..models.booking import Booking
from ..models.court import Court
from ..models.tenant import Tenant, User
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingFilters
from ..repositories.factory import RepositoryFactory
from ..schemas.booking import BookingCreate, BookingUpdate
from ..utils.time_utils import minutes_to_time, parse_hhmm
from .availability_service import AvailabilityService
from .base import BaseService
from .conflict_resolver import ConflictResolver
from .qr_code_service import QrCodeService
from .slot_block_grouper import SlotBlock, to_blocks
from .slot_generator import Slot

logger = logging.getLogger(__name__)

# Patch fields that move a booking in time or space
SCHEDULE_FIELDS = ("court_id", "start_date", "start_time", "end_time", "slots")


def _hhmm(value: Any) -> str:
    return value.strftime("%H:%M")


@dataclass
class BookingBatch:
    """Result of a create/update: the primary booking plus rows split off from it."""

    primary: Booking
    siblings: List[Booking] = field(default_factory=list)

    @property
    def bookings(self) -> List[Booking]:
        return [self.primary, *self.siblings]


class BookingService(BaseService):
    """Service layer for the booking lifecycle."""

    def __init__(
        self,
        db: Session,
        conflict_resolver: Optional[ConflictResolver] = None,
        availability_service: Optional[AvailabilityService] = None,
        qr_code_service: Optional[QrCodeService] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        super().__init__(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.court_repository = RepositoryFactory.create_court_repository(db)
        self.tenant_repository = RepositoryFactory.create_tenant_repository(db)
        self.conflict_resolver = conflict_resolver or ConflictResolver(db, self.repository)
        self.availability_service = availability_service or AvailabilityService(db)
        self.qr_code_service = qr_code_service or QrCodeService(db)
        self.event_publisher = event_publisher or EventPublisher(
            RepositoryFactory.create_job_repository(db)
        )

    # ------------------------------------------------------------------
    # Error boundary and side effects
    # ------------------------------------------------------------------

    @contextmanager
    def _error_boundary(self, operation: str, **context: Any) -> Iterator[None]:
        """Let domain errors through; log anything else and hide its details."""
        try:
            yield
        except DomainException:
            raise
        except Exception as exc:
            self.logger.error(
                f"Unexpected error during {operation}: {str(exc)}",
                exc_info=True,
                extra={"operation": operation, **context},
            )
            raise ServiceException(GENERIC_ERROR_MESSAGE, code="BOOKING_OPERATION_FAILED") from exc

    @contextmanager
    def _locked_transaction(self, keys: Iterable[Tuple[int, date]]) -> Iterator[Session]:
        """
        Take the court/day locks, then run the write transaction.

        The read transaction opened by the lookups is ended first, so the
        availability checks under the lock see every booking committed while
        this request was waiting.
        """
        keys = list(keys)
        self.db.commit()
        with court_day_locks(self.db, keys):
            with self.transaction() as session:
                yield session

    def _best_effort(self, action: str, func: Callable[[], Any], **context: Any) -> Any:
        """Run a side effect in a savepoint; on failure log it and carry on."""
        try:
            with self.db.begin_nested():
                return func()
        except Exception as exc:
            self.logger.error(
                f"Failed to {action}: {str(exc)}",
                exc_info=True,
                extra={"side_effect": action, **context},
            )
            return None

    def _attach_qr_code(self, booking: Booking) -> None:
        def _generate() -> None:
            booking.qr_code = self.qr_code_service.generate(booking.tenant_id, booking.id)
            self.db.flush()

        self._best_effort("generate QR code", _generate, booking_id=booking.id, tenant_id=booking.tenant_id)

    def _publish(self, event: Any, **context: Any) -> None:
        self._best_effort(
            f"publish {type(event).__name__}", lambda: self.event_publisher.publish(event), **context
        )

    # ------------------------------------------------------------------
    # Lookups and validation helpers
    # ------------------------------------------------------------------

    def _load_booking(self, tenant_id: int, booking_id: int) -> Booking:
        booking = self.repository.get_for_tenant(tenant_id, booking_id)
        if booking is None:
            raise NotFoundException(
                "Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id}
            )
        return booking

    def _load_court(self, tenant_id: int, court_id: Optional[int]) -> Court:
        court = self.court_repository.get_for_tenant(tenant_id, court_id) if court_id else None
        if court is None:
            raise InvalidReferenceException(
                "Invalid court for this tenant", details={"court_id": court_id}
            )
        return court

    def _load_client(self, client_id: Optional[int]) -> User:
        client = self.tenant_repository.get_client(client_id) if client_id else None
        if client is None:
            raise InvalidReferenceException("Invalid client", details={"client_id": client_id})
        return client

    @staticmethod
    def _ensure_not_past(day: date) -> None:
        if day < utc_today():
            raise ValidationException(
                "Bookings cannot be made for past dates",
                code="PAST_DATE",
                details={"start_date": day.isoformat()},
            )

    @staticmethod
    def _blocks_from_slots(slots: List[Any], buffer_minutes: int) -> List[SlotBlock]:
        return to_blocks([Slot.parse(slot.start, slot.end) for slot in slots], buffer_minutes)

    @staticmethod
    def _single_block(start_time: Optional[str], end_time: Optional[str]) -> SlotBlock:
        if not start_time or not end_time:
            raise ValidationException(
                "Both start_time and end_time are required", code="INVALID_INTERVAL"
            )
        slot = Slot(parse_hhmm(start_time), parse_hhmm(end_time, is_end_time=True))
        if slot.end <= slot.start:
            raise ValidationException("end_time must be after start_time", code="INVALID_INTERVAL")
        return SlotBlock((slot,))

    @classmethod
    def _current_block(cls, booking: Booking) -> SlotBlock:
        return cls._single_block(_hhmm(booking.start_time), _hhmm(booking.end_time))

    @staticmethod
    def _revives(booking: Booking, patch: Dict[str, Any]) -> bool:
        """True when the patch takes a cancelled booking back to an active status."""
        requested = patch.get("status")
        return (
            booking.status == BookingStatus.CANCELLED.value
            and requested is not None
            and BookingStatus(requested) != BookingStatus.CANCELLED
        )

    @staticmethod
    def _interval_price(court: Court, slot: Slot) -> int:
        intervals = max(1, math.ceil(slot.duration / court.interval_minutes))
        return court.price_per_interval * intervals

    def _ensure_free(
        self,
        court: Court,
        day: date,
        slot: Slot,
        acting_user_id: Optional[int],
        exclude_booking_id: Optional[int] = None,
    ) -> None:
        conflict = self.conflict_resolver.find_conflict(
            court, day, slot, acting_user_id=acting_user_id, exclude_booking_id=exclude_booking_id
        )
        if conflict is not None:
            raise SlotConflictException(
                conflict.message(slot),
                details={
                    "court_id": court.id,
                    "date": day.isoformat(),
                    "requested": slot.to_dict(),
                    "conflicting": {
                        "booking_id": conflict.booking_id,
                        "window": conflict.window,
                        "reason": conflict.reason,
                    },
                },
            )

    def _ensure_open(self, court: Court, day: date, slot: Slot) -> None:
        if not self.availability_service.is_within_opening_hours(court, day, slot.start, slot.end):
            raise ValidationException(
                "The requested time is outside the court's opening hours",
                code="OUTSIDE_OPENING_HOURS",
                details={"court_id": court.id, "date": day.isoformat(), "requested": slot.to_dict()},
            )

    @staticmethod
    def _ensure_mutable(booking: Booking, action: str) -> None:
        if booking.is_frozen:
            raise ImmutableBookingException(
                f"Bookings already marked as attended cannot be {action}",
                details={"booking_id": booking.id},
            )

    @staticmethod
    def _initial_status(
        tenant: Tenant, requested: Optional[BookingStatus], context: BookingContext
    ) -> str:
        if requested is not None:
            return BookingStatus(requested).value
        if context == BookingContext.MOBILE and not tenant.auto_confirm_bookings:
            return BookingStatus.PENDING.value
        return BookingStatus.CONFIRMED.value

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        tenant: Tenant,
        data: BookingCreate,
        context: BookingContext = BookingContext.BUSINESS,
    ) -> BookingBatch:
        """
        Create one booking per contiguous block of the requested interval(s).

        Args:
            tenant: Tenant the booking belongs to
            data: Either a start/end pair or a list of slots
            context: BUSINESS (manager) or MOBILE (client in the app)

        Returns:
            The first block's booking plus sibling bookings for later blocks

        Raises:
            InvalidReferenceException: court not owned by tenant, unknown client
            SlotConflictException: a block overlaps a booking or a foreign buffer
            ValidationException: past date, or outside opening hours (mobile)
        """
        payload = data.model_dump(mode="json")
        self.log_operation("create_booking", tenant_id=tenant.id, context=context.value, payload=payload)

        with self._error_boundary("create_booking", tenant_id=tenant.id, payload=payload):
            court = self._load_court(tenant.id, data.court_id)
            client = self._load_client(data.client_id)
            day = data.start_date
            self._ensure_not_past(day)

            from_slots = bool(data.slots)
            if from_slots:
                blocks = self._blocks_from_slots(data.slots or [], court.buffer_minutes)
            else:
                blocks = [self._single_block(data.start_time, data.end_time)]

            if context == BookingContext.MOBILE:
                for block in blocks:
                    self._ensure_open(court, day, block.as_slot())

            status = self._initial_status(tenant, data.status, context)
            payment_status = (data.payment_status or PaymentStatus.PENDING).value
            payment_method = data.payment_method
            if payment_method is None and context == BookingContext.MOBILE:
                payment_method = PaymentMethod.FROM_APP

            with self._locked_transaction([(court.id, day)]):
                rows: List[Booking] = []
                for block in blocks:
                    slot = block.as_slot()
                    self._ensure_free(court, day, slot, acting_user_id=client.id)
                    if from_slots:
                        price = block.price(court.price_per_interval)
                    elif data.price is not None:
                        price = data.price
                    else:
                        price = self._interval_price(court, slot)
                    rows.append(
                        self.repository.create(
                            tenant_id=tenant.id,
                            court_id=court.id,
                            user_id=client.id,
                            start_date=day,
                            end_date=day,
                            start_time=minutes_to_time(slot.start),
                            end_time=minutes_to_time(slot.end),
                            price=price,
                            status=status,
                            payment_status=payment_status,
                            payment_method=payment_method.value if payment_method else None,
                        )
                    )

                self.tenant_repository.link_client(tenant.id, client.id)
                for row in rows:
                    self._attach_qr_code(row)
                self._publish(
                    BookingCreated(
                        booking_id=rows[0].id,
                        tenant_id=tenant.id,
                        court_id=court.id,
                        client_id=client.id,
                        context=context.value,
                        created_at=datetime.now(timezone.utc),
                        sibling_ids=[row.id for row in rows[1:]],
                    ),
                    booking_id=rows[0].id,
                )

        prometheus_metrics.inc_bookings_created(context.value, len(rows))
        self.logger.info(
            f"Created {len(rows)} booking(s) for client {client.id} on court {court.id}",
            extra={"tenant_id": tenant.id, "booking_ids": [row.id for row in rows]},
        )
        return BookingBatch(rows[0], rows[1:])

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self,
        tenant: Tenant,
        booking_id: int,
        data: BookingUpdate,
        context: BookingContext = BookingContext.BUSINESS,
    ) -> BookingBatch:
        """
        Apply a partial patch to a booking.

        When the court, date or times change the new interval is checked
        again, ignoring the booking's own reservation and letting it touch
        its owner's buffers. A slot list that groups into several blocks
        updates this booking with the first block and creates one new
        booking per remaining block.

        Raises:
            NotFoundException: booking not found for tenant
            ImmutableBookingException: booking already marked present
            SlotConflictException: the new interval is taken
        """
        patch = data.model_dump(exclude_unset=True)
        payload = data.model_dump(mode="json", exclude_unset=True)
        self.log_operation("update_booking", tenant_id=tenant.id, booking_id=booking_id, payload=payload)

        with self._error_boundary("update_booking", tenant_id=tenant.id, booking_id=booking_id, payload=payload):
            booking = self._load_booking(tenant.id, booking_id)
            self._ensure_mutable(booking, "updated")

            moves = any(name in patch for name in SCHEDULE_FIELDS)
            court = self._load_court(tenant.id, patch["court_id"]) if "court_id" in patch else booking.court
            day = patch.get("start_date") or booking.start_date
            if "start_date" in patch:
                self._ensure_not_past(day)

            blocks: List[SlotBlock] = []
            if data.slots:
                blocks = self._blocks_from_slots(data.slots, court.buffer_minutes)
            elif moves:
                start = patch.get("start_time") or _hhmm(booking.start_time)
                end = patch.get("end_time") or _hhmm(booking.end_time)
                blocks = [self._single_block(start, end)]

            if blocks and context == BookingContext.MOBILE:
                for block in blocks:
                    self._ensure_open(court, day, block.as_slot())

            lock_keys: Set[Tuple[int, date]] = {(booking.court_id, booking.start_date), (court.id, day)}
            with self._locked_transaction(lock_keys):
                self.db.refresh(booking)
                self._ensure_mutable(booking, "updated")
                if not blocks and self._revives(booking, patch):
                    # Reactivating a cancelled booking re-checks its interval
                    blocks = [self._current_block(booking)]
                siblings = self._apply_update(tenant, booking, court, day, blocks, patch, bool(data.slots))

                if not booking.qr_code:
                    self._attach_qr_code(booking)
                self._publish(
                    BookingUpdated(
                        booking_id=booking.id,
                        tenant_id=tenant.id,
                        changed_fields=sorted(patch.keys()),
                        updated_at=datetime.now(timezone.utc),
                        sibling_ids=[row.id for row in siblings],
                    ),
                    booking_id=booking.id,
                )

        return BookingBatch(booking, siblings)

    def _apply_update(
        self,
        tenant: Tenant,
        booking: Booking,
        court: Court,
        day: date,
        blocks: List[SlotBlock],
        patch: Dict[str, Any],
        from_slots: bool,
    ) -> List[Booking]:
        """Write the patch to booking; returns bookings created for extra blocks."""
        changes: Dict[str, Any] = {}
        for name in ("status", "payment_status", "payment_method"):
            if name in patch:
                value = patch[name]
                changes[name] = value.value if value is not None else None
        if "price" in patch and patch["price"] is not None:
            changes["price"] = patch["price"]

        siblings: List[Booking] = []
        if blocks:
            first = blocks[0].as_slot()
            self._ensure_free(court, day, first, booking.user_id, exclude_booking_id=booking.id)
            changes.update(
                court_id=court.id,
                start_date=day,
                end_date=day,
                start_time=minutes_to_time(first.start),
                end_time=minutes_to_time(first.end),
            )
            if from_slots:
                changes["price"] = blocks[0].price(court.price_per_interval)
            self.repository.update(booking, **changes)

            for block in blocks[1:]:
                slot = block.as_slot()
                self._ensure_free(court, day, slot, booking.user_id)
                sibling = self.repository.create(
                    tenant_id=tenant.id,
                    court_id=court.id,
                    user_id=booking.user_id,
                    start_date=day,
                    end_date=day,
                    start_time=minutes_to_time(slot.start),
                    end_time=minutes_to_time(slot.end),
                    price=block.price(court.price_per_interval),
                    status=booking.status,
                    payment_status=booking.payment_status,
                    payment_method=booking.payment_method,
                )
                self._attach_qr_code(sibling)
                siblings.append(sibling)
        elif changes:
            self.repository.update(booking, **changes)

        if siblings:
            prometheus_metrics.inc_bookings_created("split", len(siblings))
        return siblings

    # ------------------------------------------------------------------
    # Cancel / delete / presence
    # ------------------------------------------------------------------

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, tenant: Tenant, booking_id: int) -> Booking:
        """
        Cancel a booking; the row stays and no longer blocks its slot.

        Raises:
            NotFoundException, AlreadyCancelledException,
            ImmutableBookingException, PastBookingException
        """
        self.log_operation("cancel_booking", tenant_id=tenant.id, booking_id=booking_id)

        with self._error_boundary("cancel_booking", tenant_id=tenant.id, booking_id=booking_id):
            with self.transaction():
                booking = self._load_booking(tenant.id, booking_id)
                if booking.is_cancelled:
                    raise AlreadyCancelledException()
                self._ensure_mutable(booking, "cancelled")
                if booking.is_past(utc_today()):
                    raise PastBookingException()

                reference = booking.qr_code
                self.repository.update(booking, status=BookingStatus.CANCELLED.value)
                if reference:
                    self._best_effort(
                        "delete QR code",
                        lambda: self.qr_code_service.delete(tenant.id, reference),
                        booking_id=booking.id,
                    )
                self._publish(
                    BookingCancelled(
                        booking_id=booking.id,
                        tenant_id=tenant.id,
                        cancelled_at=datetime.now(timezone.utc),
                        qr_code=reference,
                    ),
                    booking_id=booking.id,
                )

        return booking

    @BaseService.measure_operation("delete_booking")
    def delete_booking(self, tenant: Tenant, booking_id: int) -> None:
        """
        Hard-delete a booking.

        Attended bookings and bookings paid in the app are kept; the latter
        must be cancelled so the payment trail survives.
        """
        self.log_operation("delete_booking", tenant_id=tenant.id, booking_id=booking_id)

        with self._error_boundary("delete_booking", tenant_id=tenant.id, booking_id=booking_id):
            with self.transaction():
                booking = self._load_booking(tenant.id, booking_id)
                self._ensure_mutable(booking, "deleted")
                if booking.is_paid_in_app:
                    raise ImmutableBookingException(
                        "Bookings paid in the app cannot be deleted, cancel them instead",
                        details={"booking_id": booking.id},
                    )
                reference = booking.qr_code
                self.repository.delete(booking)
                if reference:
                    self._best_effort(
                        "delete QR code",
                        lambda: self.qr_code_service.delete(tenant.id, reference),
                        booking_id=booking_id,
                    )

    @BaseService.measure_operation("mark_presence")
    def mark_presence(self, tenant: Tenant, booking_id: int, present: bool) -> Booking:
        """
        Record attendance. Once present is True the booking is frozen.

        Raises:
            ImmutableBookingException: already marked present
            ValidationException: cancelled booking, or its day has not come yet
        """
        self.log_operation("mark_presence", tenant_id=tenant.id, booking_id=booking_id, present=present)

        with self._error_boundary("mark_presence", tenant_id=tenant.id, booking_id=booking_id):
            with self.transaction():
                booking = self._load_booking(tenant.id, booking_id)
                self._ensure_mutable(booking, "changed")
                if booking.is_cancelled:
                    raise ValidationException(
                        "Cancelled bookings cannot be marked present",
                        code="BOOKING_CANCELLED",
                        details={"booking_id": booking.id},
                    )
                if booking.start_date > utc_today():
                    raise ValidationException(
                        "Presence can only be recorded from the day of the booking",
                        code="PRESENCE_TOO_EARLY",
                        details={"booking_id": booking.id, "start_date": booking.start_date.isoformat()},
                    )
                self.repository.update(booking, present=present)

        return booking

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_booking(self, tenant: Tenant, booking_id: int) -> Booking:
        return self._load_booking(tenant.id, booking_id)

    @staticmethod
    def page_args(page: int, per_page: Optional[int]) -> Tuple[int, int]:
        size = per_page or settings.default_page_size
        return max(page, 1), max(1, min(size, settings.max_page_size))

    @BaseService.measure_operation("list_bookings")
    def list_bookings(
        self,
        tenant: Tenant,
        filters: BookingFilters,
        page: int = 1,
        per_page: Optional[int] = None,
    ) -> Tuple[List[Booking], int]:
        """Bookings matching every given filter, latest first, paginated."""
        page, per_page = self.page_args(page, per_page)
        return self.repository.list_filtered(tenant.id, filters, page=page, per_page=per_page)

    @BaseService.measure_operation("pending_presence")
    def pending_presence(
        self,
        tenant: Tenant,
        filters: BookingFilters,
        page: int = 1,
        per_page: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[List[Booking], int]:
        """
        Bookings that have started or ended but are not marked present.

        Args:
            now: UTC reference time; defaults to the current time
        """
        page, per_page = self.page_args(page, per_page)
        reference = now or utc_now()
        if reference.tzinfo is not None:
            reference = reference.astimezone(timezone.utc).replace(tzinfo=None)
        return self.repository.list_pending_presence(
            tenant.id, filters, reference, page=page, per_page=per_page
        )
