"""Event publisher - queues events for background processing."""
from datetime import date, datetime
from typing import Any, Dict, Protocol

from ..repositories.job_repository import JobRepository


class Event(Protocol):
    """Protocol for event types."""

    def to_dict(self) -> Dict[str, Any]:
        ...


class EventPublisher:
    """Publishes domain events to the job queue for async processing."""

    def __init__(self, job_repository: JobRepository):
        self.job_repo = job_repository

    def publish(self, event: Event) -> str:
        """
        Queue an event for background processing.

        The job row is written in the caller's transaction, so the event is
        only visible to workers once the booking write commits.
        """
        event_type = type(event).__name__
        payload = event.to_dict()

        # JSON column: dates go over as ISO strings
        for key, value in payload.items():
            if isinstance(value, (datetime, date)):
                payload[key] = value.isoformat()

        return self.job_repo.enqueue(type=f"event:{event_type}", payload=payload)
