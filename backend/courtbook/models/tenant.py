# backend/courtbook/models/tenant.py
"""
Tenant and client models.

A tenant is one business (a club or venue). Clients are end users who book
courts; a client becomes linked to every tenant they have booked with.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class Tenant(Base):
    """A business that owns courts and receives bookings."""

    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    currency = Column(String(3), nullable=False, default="eur")
    timezone = Column(String(64), nullable=False, default="UTC")
    auto_confirm_bookings = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    courts = relationship("Court", back_populates="tenant")
    court_types = relationship("CourtType", back_populates="tenant")

    def __repr__(self) -> str:
        return f"<Tenant {self.id}: {self.name}>"


class User(Base):
    """A client who books courts through the mobile app or a business manager."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, unique=True)
    phone = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.name}>"


class UserTenant(Base):
    """Link between a client and a tenant they have booked with."""

    __tablename__ = "user_tenants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (UniqueConstraint("user_id", "tenant_id", name="uq_user_tenants_user_tenant"),)
