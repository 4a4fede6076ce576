"""Data access layer: one repository per aggregate, built through RepositoryFactory."""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingFilters, BookingRepository
from .court_repository import CourtRepository
from .factory import RepositoryFactory
from .job_repository import JobRepository
from .tenant_repository import TenantRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingFilters",
    "BookingRepository",
    "CourtRepository",
    "JobRepository",
    "RepositoryFactory",
    "TenantRepository",
]
