"""
QR code references for bookings.

Rendering and storage belong to an external worker: this service only
decides where a booking's QR code lives and queues the job that renders or
removes it. Jobs share the caller's transaction.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..repositories import RepositoryFactory
from ..repositories.job_repository import JobRepository
from .base import BaseService

GENERATE_JOB = "qr_code:generate"
DELETE_JOB = "qr_code:delete"


class QrCodeService(BaseService):
    def __init__(self, db: Session, job_repository: Optional[JobRepository] = None):
        super().__init__(db)
        self.job_repository = job_repository or RepositoryFactory.create_job_repository(db)

    @staticmethod
    def reference_for(tenant_id: int, booking_id: int) -> str:
        return f"{settings.qr_code_path_prefix}/{tenant_id}/qr-codes/booking_{booking_id}_qr.svg"

    @BaseService.measure_operation("generate_qr_code")
    def generate(self, tenant_id: int, booking_id: int) -> str:
        """Queue rendering of the booking's QR code and return its storage reference."""
        reference = self.reference_for(tenant_id, booking_id)
        self.job_repository.enqueue(
            type=GENERATE_JOB,
            payload={"tenant_id": tenant_id, "booking_id": booking_id, "path": reference},
        )
        self.logger.debug("Queued QR code generation", extra={"booking_id": booking_id, "path": reference})
        return reference

    @BaseService.measure_operation("delete_qr_code")
    def delete(self, tenant_id: int, reference: Optional[str]) -> bool:
        """Queue removal of a stored QR code; False when there is nothing to delete."""
        if not reference:
            return False
        self.job_repository.enqueue(
            type=DELETE_JOB,
            payload={"tenant_id": tenant_id, "path": reference},
        )
        return True
