"""
Court/day booking lock.

Every booking write for a court on a given day runs under this lock so two
requests cannot both pass the availability check and then both insert.
Callers re-validate availability after the lock is acquired.

Backends, picked per session:
- PostgreSQL: transaction-scoped advisory lock, released on commit/rollback.
- Redis (when REDIS_URL is set): SET NX EX mutex shared across processes.
- Otherwise: a process-local lock, enough for SQLite and single-worker runs.
"""

from __future__ import annotations

from contextlib import ExitStack, contextmanager
from datetime import date
import hashlib
import logging
import threading
import time
from typing import Dict, Iterable, Iterator, List, Optional, Tuple
import uuid

from redis import Redis
from sqlalchemy import text
from sqlalchemy.orm import Session

from .config import settings
from .exceptions import BookingBusyException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

LockKey = Tuple[int, date]

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()


class _LocalLockTable:
    """Process-local locks by name; an entry exists only while it is held or awaited."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, Tuple[threading.Lock, int]] = {}

    def checkout(self, name: str) -> threading.Lock:
        with self._guard:
            lock, users = self._entries.get(name) or (threading.Lock(), 0)
            self._entries[name] = (lock, users + 1)
            return lock

    def checkin(self, name: str) -> None:
        with self._guard:
            lock, users = self._entries[name]
            if users <= 1:
                del self._entries[name]
            else:
                self._entries[name] = (lock, users - 1)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


_LOCAL_LOCKS = _LocalLockTable()

_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


def _lock_name(court_id: int, day: date) -> str:
    return f"court:{court_id}:{day.isoformat()}:booking"


def advisory_key(court_id: int, day: date) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    digest = hashlib.blake2b(_lock_name(court_id, day).encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, byteorder="big", signed=True)


def _dialect_name(db: Session) -> str:
    bind = db.get_bind()
    return bind.dialect.name if bind is not None else "sqlite"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if not settings.redis_url:
        return None
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
            client.ping()
        except Exception as exc:
            logger.warning("booking_lock_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


@contextmanager
def _postgres_lock(db: Session, court_id: int, day: date) -> Iterator[None]:
    db.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": advisory_key(court_id, day)})
    prometheus_metrics.record_booking_lock("postgres", "acquired")
    # Released by PostgreSQL when the surrounding transaction ends
    yield


@contextmanager
def _redis_lock(client: Redis, court_id: int, day: date) -> Iterator[None]:
    name = _lock_name(court_id, day)
    token = uuid.uuid4().hex
    deadline = time.monotonic() + settings.booking_lock_wait_seconds
    while True:
        if client.set(name, token, nx=True, ex=settings.booking_lock_ttl_seconds):
            break
        if time.monotonic() >= deadline:
            prometheus_metrics.record_booking_lock("redis", "timeout")
            logger.warning(
                "booking_lock_timeout",
                extra={"court_id": court_id, "date": day.isoformat(), "backend": "redis"},
            )
            raise BookingBusyException(details={"court_id": court_id, "date": day.isoformat()})
        time.sleep(0.05)

    prometheus_metrics.record_booking_lock("redis", "acquired")
    try:
        yield
    finally:
        try:
            client.eval(_RELEASE_SCRIPT, 1, name, token)
        except Exception as exc:
            # The TTL frees the key eventually
            prometheus_metrics.record_booking_lock("redis", "error")
            logger.warning(
                "booking_lock_release_failed",
                extra={"court_id": court_id, "date": day.isoformat(), "error": str(exc)},
            )


@contextmanager
def _process_lock(court_id: int, day: date) -> Iterator[None]:
    name = _lock_name(court_id, day)
    lock = _LOCAL_LOCKS.checkout(name)
    try:
        if not lock.acquire(timeout=settings.booking_lock_wait_seconds):
            prometheus_metrics.record_booking_lock("local", "timeout")
            logger.warning(
                "booking_lock_timeout",
                extra={"court_id": court_id, "date": day.isoformat(), "backend": "local"},
            )
            raise BookingBusyException(details={"court_id": court_id, "date": day.isoformat()})
        prometheus_metrics.record_booking_lock("local", "acquired")
        try:
            yield
        finally:
            lock.release()
    finally:
        _LOCAL_LOCKS.checkin(name)


@contextmanager
def court_day_lock(db: Session, court_id: int, day: date) -> Iterator[None]:
    """Hold the booking lock for one court on one day."""
    with court_day_locks(db, [(court_id, day)]):
        yield


@contextmanager
def court_day_locks(db: Session, keys: Iterable[LockKey]) -> Iterator[None]:
    """
    Hold booking locks for several (court_id, day) pairs.

    Keys are de-duplicated and taken in sorted order so two updates moving
    bookings between the same courts cannot deadlock.
    """
    ordered: List[LockKey] = sorted(set(keys))
    dialect = _dialect_name(db)
    redis_client = None if dialect == "postgresql" else _get_sync_redis()

    with ExitStack() as stack:
        for court_id, day in ordered:
            if dialect == "postgresql":
                stack.enter_context(_postgres_lock(db, court_id, day))
            elif redis_client is not None:
                stack.enter_context(_redis_lock(redis_client, court_id, day))
            else:
                stack.enter_context(_process_lock(court_id, day))
        logger.debug(
            "booking_lock_acquired",
            extra={"keys": [_lock_name(c, d) for c, d in ordered], "dialect": dialect},
        )
        yield
