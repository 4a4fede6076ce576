"""Booking domain events."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class BookingCreated:
    """Fired after a booking request is persisted (one event per request)."""

    booking_id: int
    tenant_id: int
    court_id: int
    client_id: int
    context: str
    created_at: datetime
    sibling_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingUpdated:
    """Fired after a booking is patched; sibling_ids lists rows created by a split."""

    booking_id: int
    tenant_id: int
    changed_fields: List[str]
    updated_at: datetime
    sibling_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCancelled:
    """Fired after a booking is cancelled."""

    booking_id: int
    tenant_id: int
    cancelled_at: datetime
    qr_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
