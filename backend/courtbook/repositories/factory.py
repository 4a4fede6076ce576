# backend/courtbook/repositories/factory.py
"""
Repository Factory for the court booking platform.

Centralizes repository creation so services never build repositories by hand.
"""

from sqlalchemy.orm import Session

from .availability_repository import AvailabilityRepository
from .booking_repository import BookingRepository
from .court_repository import CourtRepository
from .job_repository import JobRepository
from .tenant_repository import TenantRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_availability_repository(db: Session) -> AvailabilityRepository:
        """Create repository for availability rule lookups."""
        return AvailabilityRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> BookingRepository:
        """Create repository for booking operations."""
        return BookingRepository(db)

    @staticmethod
    def create_court_repository(db: Session) -> CourtRepository:
        return CourtRepository(db)

    @staticmethod
    def create_tenant_repository(db: Session) -> TenantRepository:
        return TenantRepository(db)

    @staticmethod
    def create_job_repository(db: Session) -> JobRepository:
        return JobRepository(db)
