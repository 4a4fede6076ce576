# backend/courtbook/models/court.py
"""
Court and court type models.

The court type carries the scheduling parameters shared by all of its
courts: slot length, buffer between different clients, and the price of one
slot in minor currency units.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base


class CourtType(Base):
    """A kind of court (padel, tennis, ...) with its booking granularity."""

    __tablename__ = "court_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False, default="padel")
    name = Column(String(255), nullable=False)
    interval_time_minutes = Column(Integer, nullable=False, default=60)
    buffer_time_minutes = Column(Integer, nullable=False, default=0)
    price_per_interval = Column(Integer, nullable=False, default=0)
    status = Column(Boolean, nullable=False, default=True)

    tenant = relationship("Tenant", back_populates="court_types")
    courts = relationship("Court", back_populates="court_type")

    __table_args__ = (
        CheckConstraint("interval_time_minutes > 0", name="ck_court_types_interval_positive"),
        CheckConstraint("buffer_time_minutes >= 0", name="ck_court_types_buffer_non_negative"),
        CheckConstraint("price_per_interval >= 0", name="ck_court_types_price_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<CourtType {self.id}: {self.name} interval={self.interval_time_minutes}m "
            f"buffer={self.buffer_time_minutes}m>"
        )


class Court(Base):
    """A bookable court belonging to one tenant and one court type."""

    __tablename__ = "courts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    court_type_id = Column(Integer, ForeignKey("court_types.id"), nullable=False)
    name = Column(String(255), nullable=False)
    number = Column(Integer, nullable=True)
    status = Column(Boolean, nullable=False, default=True)

    tenant = relationship("Tenant", back_populates="courts")
    court_type = relationship("CourtType", back_populates="courts")

    @property
    def interval_minutes(self) -> int:
        return int(self.court_type.interval_time_minutes or 60)

    @property
    def buffer_minutes(self) -> int:
        return int(self.court_type.buffer_time_minutes or 0)

    @property
    def price_per_interval(self) -> int:
        return int(self.court_type.price_per_interval or 0)

    def __repr__(self) -> str:
        return f"<Court {self.id}: {self.name} tenant={self.tenant_id}>"
