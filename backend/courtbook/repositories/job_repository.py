"""Repository for queued background jobs (events, QR rendering)."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import ulid

from ..core.exceptions import RepositoryException
from ..models.background_job import BackgroundJob

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRepository:
    """Data access helpers for the background_jobs table."""

    def __init__(self, db: Session):
        self.db = db
        self.logger = logger

    def enqueue(
        self,
        *,
        type: str,
        payload: dict[str, Any],
        available_at: Optional[datetime] = None,
    ) -> str:
        """Persist a new job ready for processing; flushed with the caller's transaction."""
        try:
            job_id = str(ulid.ULID())
            job = BackgroundJob(
                id=job_id,
                type=type,
                payload=payload,
                status="queued",
                attempts=0,
                available_at=available_at or _utcnow(),
            )
            self.db.add(job)
            self.db.flush()
            return job_id
        except SQLAlchemyError as exc:
            self.logger.error("Failed to enqueue job %s: %s", type, str(exc))
            raise RepositoryException("Failed to enqueue background job") from exc

    def list_by_type(self, type: str) -> List[BackgroundJob]:
        try:
            return (
                self.db.query(BackgroundJob)
                .filter(BackgroundJob.type == type)
                .order_by(BackgroundJob.created_at.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            self.logger.error("Failed to list jobs of type %s: %s", type, str(exc))
            raise RepositoryException("Failed to list background jobs") from exc
