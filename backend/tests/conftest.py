# backend/tests/conftest.py
"""
Pytest configuration for the court booking engine.

Every test gets its own in-memory SQLite database, created from the models
and dropped afterwards. Fixtures commit, just like the services do.
"""

import os

# Set before any courtbook import so the app engine never points at a real database
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["IS_TESTING"] = "true"
os.environ.pop("REDIS_URL", None)

from datetime import date, time, timedelta
from typing import Callable, Iterator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from courtbook.api.dependencies import get_db
from courtbook.core.enums import Weekday
from courtbook.core.timezone_utils import utc_today
from courtbook.database import Base, enable_sqlite_savepoints
from courtbook.main import app
from courtbook.models import Booking, Court, CourtAvailability, CourtType, Tenant, User


@pytest.fixture(scope="function")
def db() -> Iterator[Session]:
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(db: Session) -> Iterator[TestClient]:
    """Create a test client bound to the test database."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


# ============================================================================
# DATA FIXTURES
# ============================================================================


@pytest.fixture
def today() -> date:
    return utc_today()


@pytest.fixture
def future_day(today: date) -> date:
    """A bookable day a week ahead."""
    return today + timedelta(days=7)


@pytest.fixture
def tenant(db: Session) -> Tenant:
    tenant = Tenant(name="Clube de Padel", currency="eur", timezone="Europe/Lisbon", auto_confirm_bookings=True)
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def other_tenant(db: Session) -> Tenant:
    tenant = Tenant(name="Other Club", currency="eur", timezone="UTC")
    db.add(tenant)
    db.commit()
    return tenant


@pytest.fixture
def make_court(db: Session, tenant: Tenant) -> Callable[..., Court]:
    """Create a court (and its type) with the given scheduling parameters."""

    def _make(
        *,
        interval: int = 60,
        buffer: int = 0,
        price: int = 1500,
        owner: Optional[Tenant] = None,
        active: bool = True,
        name: str = "Court 1",
    ) -> Court:
        owner = owner or tenant
        court_type = CourtType(
            tenant_id=owner.id,
            name="Padel",
            interval_time_minutes=interval,
            buffer_time_minutes=buffer,
            price_per_interval=price,
        )
        db.add(court_type)
        db.flush()
        court = Court(tenant_id=owner.id, court_type_id=court_type.id, name=name, status=active)
        db.add(court)
        db.commit()
        db.refresh(court)
        return court

    return _make


@pytest.fixture
def court(make_court: Callable[..., Court]) -> Court:
    """Hourly court, no buffer, 15.00 per slot."""
    return make_court()


@pytest.fixture
def open_every_day(db: Session) -> Callable[..., None]:
    """Add recurring type-level opening hours for every weekday."""

    def _open(court: Court, start: time = time(8, 0), end: time = time(22, 0)) -> None:
        for weekday in Weekday:
            db.add(
                CourtAvailability(
                    tenant_id=court.tenant_id,
                    court_type_id=court.court_type_id,
                    day_of_week_recurring=weekday.value,
                    start_time=start,
                    end_time=end,
                    is_available=True,
                )
            )
        db.commit()

    return _open


@pytest.fixture
def open_court(court: Court, open_every_day: Callable[..., None]) -> Court:
    """The default court, open 08:00-22:00 every day."""
    open_every_day(court)
    return court


@pytest.fixture
def player(db: Session) -> User:
    user = User(name="Ana Costa", email="ana@example.com", phone="+351900000001")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_player(db: Session) -> User:
    user = User(name="Bruno Silva", email="bruno@example.com")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def make_booking(db: Session) -> Callable[..., Booking]:
    """Insert a booking row directly, bypassing the service checks."""

    def _make(court: Court, user: User, day: date, start: time, end: time, **overrides) -> Booking:
        booking = Booking(
            tenant_id=court.tenant_id,
            court_id=court.id,
            user_id=user.id,
            start_date=day,
            start_time=start,
            end_time=end,
            price=overrides.pop("price", 1500),
            **overrides,
        )
        db.add(booking)
        db.commit()
        return booking

    return _make
