# backend/courtbook/models/__init__.py
"""
SQLAlchemy models for the court booking platform.

Importing this package registers every table on Base.metadata.
"""

from .availability import CourtAvailability
from .background_job import BackgroundJob
from .booking import Booking
from .court import Court, CourtType
from .tenant import Tenant, User, UserTenant

__all__ = [
    "BackgroundJob",
    "Booking",
    "Court",
    "CourtAvailability",
    "CourtType",
    "Tenant",
    "User",
    "UserTenant",
]
