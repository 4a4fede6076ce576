# backend/courtbook/models/booking.py
"""
Booking model for the court booking platform.

A booking reserves one court for one contiguous [start_time, end_time)
window on a single day. A multi-slot request may produce several bookings,
one per contiguous block.

Invariant: on a given court and date, non-cancelled bookings never overlap.
Once present is True the booking is frozen.
"""

from datetime import date
from typing import Any, cast

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.enums import BookingStatus, PaymentMethod, PaymentStatus
from ..database import Base


class Booking(Base):
    """A court reservation made by a client for a tenant."""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    court_id = Column(Integer, ForeignKey("courts.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Single-day bookings: end_date always equals start_date
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    # Minor currency units
    price = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_method = Column(String(20), nullable=True)
    present = Column(Boolean, nullable=True)
    qr_code = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    court = relationship("Court")
    client = relationship("User")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="ck_bookings_status",
        ),
        CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded', 'failed', 'partially_paid')",
            name="ck_bookings_payment_status",
        ),
        CheckConstraint("price >= 0", name="ck_bookings_price_non_negative"),
        Index("ix_bookings_court_date", "court_id", "start_date"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.CONFIRMED.value
        if not self.payment_status:
            self.payment_status = PaymentStatus.PENDING.value
        if self.end_date is None and self.start_date is not None:
            self.end_date = self.start_date

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: court={self.court_id} user={self.user_id} "
            f"date={self.start_date} time={self.start_time}-{self.end_time} status={self.status}>"
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    @property
    def is_frozen(self) -> bool:
        """Attended bookings can no longer be changed."""
        return self.present is True

    @property
    def is_paid_in_app(self) -> bool:
        return self.payment_method == PaymentMethod.FROM_APP.value

    def is_past(self, today: date) -> bool:
        return cast(date, self.start_date) < today
