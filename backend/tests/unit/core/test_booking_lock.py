from __future__ import annotations

from datetime import date
from unittest.mock import Mock

import pytest

from courtbook.core import booking_lock
from courtbook.core.booking_lock import advisory_key, court_day_lock, court_day_locks
from courtbook.core.config import settings
from courtbook.core.exceptions import BookingBusyException

DAY = date(2030, 5, 14)


def _session(dialect: str = "sqlite") -> Mock:
    db = Mock()
    db.get_bind.return_value.dialect.name = dialect
    return db


class TestLocalLock:
    def test_lock_is_released_after_use(self) -> None:
        db = _session()

        with court_day_lock(db, 1, DAY):
            pass
        with court_day_lock(db, 1, DAY):
            pass

    def test_held_lock_times_out(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "booking_lock_wait_seconds", 0.01)
        db = _session()

        with court_day_lock(db, 2, DAY):
            with pytest.raises(BookingBusyException) as exc:
                with court_day_lock(db, 2, DAY):
                    pass

        assert exc.value.status_code == 409
        assert exc.value.code == "BOOKING_BUSY"

    def test_duplicate_keys_are_taken_once(self) -> None:
        db = _session()

        with court_day_locks(db, [(3, DAY), (3, DAY)]):
            pass

    def test_lock_released_when_body_raises(self) -> None:
        db = _session()

        with pytest.raises(RuntimeError):
            with court_day_lock(db, 4, DAY):
                raise RuntimeError("boom")

        with court_day_lock(db, 4, DAY):
            pass

    def test_entries_are_dropped_once_released(self) -> None:
        db = _session()

        with court_day_locks(db, [(8, DAY), (9, DAY)]):
            assert len(booking_lock._LOCAL_LOCKS) == 2
        for court_id in range(100, 150):
            with court_day_lock(db, court_id, DAY):
                pass

        assert len(booking_lock._LOCAL_LOCKS) == 0

    def test_timed_out_waiter_leaves_no_entry(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "booking_lock_wait_seconds", 0.01)
        db = _session()

        with court_day_lock(db, 10, DAY):
            with pytest.raises(BookingBusyException):
                with court_day_lock(db, 10, DAY):
                    pass
            assert len(booking_lock._LOCAL_LOCKS) == 1

        assert len(booking_lock._LOCAL_LOCKS) == 0


class TestPostgresLock:
    def test_uses_transaction_advisory_lock(self) -> None:
        db = _session("postgresql")

        with court_day_lock(db, 5, DAY):
            pass

        statement, params = db.execute.call_args.args
        assert "pg_advisory_xact_lock" in str(statement)
        assert params == {"key": advisory_key(5, DAY)}

    def test_advisory_key_is_stable_and_signed_64_bit(self) -> None:
        key = advisory_key(5, DAY)

        assert key == advisory_key(5, DAY)
        assert key != advisory_key(6, DAY)
        assert -(2**63) <= key < 2**63


class TestRedisLock:
    def test_busy_key_times_out(self, monkeypatch: pytest.MonkeyPatch) -> None:
        redis_client = Mock()
        redis_client.set.return_value = False
        monkeypatch.setattr(booking_lock, "_get_sync_redis", lambda: redis_client)
        monkeypatch.setattr(settings, "booking_lock_wait_seconds", 0.0)

        with pytest.raises(BookingBusyException):
            with court_day_lock(_session(), 6, DAY):
                pass

    def test_release_uses_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        redis_client = Mock()
        redis_client.set.return_value = True
        monkeypatch.setattr(booking_lock, "_get_sync_redis", lambda: redis_client)

        with court_day_lock(_session(), 7, DAY):
            pass

        token = redis_client.set.call_args.args[1]
        assert redis_client.eval.call_args.args[1:] == (1, "court:7:2030-05-14:booking", token)
