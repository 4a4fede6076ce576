from __future__ import annotations

from datetime import date, time, timedelta
from typing import Callable

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from courtbook.models import Booking, Court, Tenant, User


def _url(tenant: Tenant, path: str) -> str:
    return f"/api/v1/tenants/{tenant.id}{path}"


class TestCreateBookingRoute:
    def test_create_returns_batch(
        self, client: TestClient, tenant: Tenant, open_court: Court, player: User, future_day: date
    ) -> None:
        response = client.post(
            _url(tenant, "/bookings"),
            json={
                "court_id": open_court.id,
                "client_id": player.id,
                "start_date": future_day.isoformat(),
                "slots": [
                    {"start": "10:00", "end": "11:00"},
                    {"start": "14:00", "end": "15:00"},
                ],
            },
        )

        assert response.status_code == 201
        body = response.json()
        assert body["booking"]["start_time"] == "10:00"
        assert body["booking"]["end_time"] == "11:00"
        assert body["booking"]["client"]["name"] == "Ana Costa"
        assert [row["start_time"] for row in body["siblings"]] == ["14:00"]

    def test_conflict_is_a_problem_response(
        self,
        client: TestClient,
        tenant: Tenant,
        open_court: Court,
        player: User,
        other_player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        make_booking(open_court, other_player, future_day, time(10, 0), time(11, 0))

        response = client.post(
            _url(tenant, "/bookings"),
            json={
                "court_id": open_court.id,
                "client_id": player.id,
                "start_date": future_day.isoformat(),
                "start_time": "10:00",
                "end_time": "11:00",
            },
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "SLOT_CONFLICT"
        assert body["status"] == 400
        assert "10:00-11:00" in body["detail"]

    def test_interval_and_slots_together_are_rejected(
        self, client: TestClient, tenant: Tenant, open_court: Court, player: User, future_day: date
    ) -> None:
        response = client.post(
            _url(tenant, "/bookings"),
            json={
                "court_id": open_court.id,
                "client_id": player.id,
                "start_date": future_day.isoformat(),
                "start_time": "10:00",
                "end_time": "11:00",
                "slots": [{"start": "12:00", "end": "13:00"}],
            },
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_bad_time_format_is_rejected(
        self, client: TestClient, tenant: Tenant, open_court: Court, player: User, future_day: date
    ) -> None:
        response = client.post(
            _url(tenant, "/bookings"),
            json={
                "court_id": open_court.id,
                "client_id": player.id,
                "start_date": future_day.isoformat(),
                "start_time": "25:00",
                "end_time": "26:00",
            },
        )

        assert response.status_code == 422

    def test_unknown_tenant(self, client: TestClient, db: Session) -> None:
        response = client.get("/api/v1/tenants/999/bookings")

        assert response.status_code == 404
        assert response.json()["code"] == "TENANT_NOT_FOUND"

    def test_mobile_booking_is_paid_in_app(
        self, client: TestClient, tenant: Tenant, open_court: Court, player: User, future_day: date
    ) -> None:
        response = client.post(
            _url(tenant, "/mobile/bookings"),
            json={
                "court_id": open_court.id,
                "client_id": player.id,
                "start_date": future_day.isoformat(),
                "start_time": "10:00",
                "end_time": "11:00",
            },
        )

        assert response.status_code == 201
        assert response.json()["booking"]["payment_method"] == "from_app"


class TestBookingLifecycleRoutes:
    def test_get_update_cancel(
        self,
        client: TestClient,
        tenant: Tenant,
        open_court: Court,
        player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        booking = make_booking(open_court, player, future_day, time(10, 0), time(11, 0))

        fetched = client.get(_url(tenant, f"/bookings/{booking.id}"), params={"timezone": "Asia/Tokyo"})
        assert fetched.status_code == 200
        assert fetched.json()["local_start"] == "19:00"

        updated = client.patch(
            _url(tenant, f"/bookings/{booking.id}"), json={"start_time": "12:00", "end_time": "13:00"}
        )
        assert updated.status_code == 200
        assert updated.json()["booking"]["start_time"] == "12:00"

        cancelled = client.post(_url(tenant, f"/bookings/{booking.id}/cancel"))
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

        again = client.post(_url(tenant, f"/bookings/{booking.id}/cancel"))
        assert again.status_code == 400
        assert again.json()["code"] == "ALREADY_CANCELLED"

    def test_presence_then_delete_is_refused(
        self,
        client: TestClient,
        tenant: Tenant,
        open_court: Court,
        player: User,
        today: date,
        make_booking: Callable,
    ) -> None:
        booking = make_booking(open_court, player, today, time(10, 0), time(11, 0))

        marked = client.post(_url(tenant, f"/bookings/{booking.id}/presence"), json={"present": True})
        assert marked.status_code == 200
        assert marked.json()["present"] is True

        response = client.delete(_url(tenant, f"/bookings/{booking.id}"))
        assert response.status_code == 400
        assert response.json()["code"] == "IMMUTABLE_BOOKING"

    def test_delete(
        self,
        client: TestClient,
        db: Session,
        tenant: Tenant,
        open_court: Court,
        player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        booking = make_booking(open_court, player, future_day, time(10, 0), time(11, 0))

        response = client.delete(_url(tenant, f"/bookings/{booking.id}"))

        assert response.status_code == 204
        assert db.query(Booking).count() == 0

    def test_missing_booking(self, client: TestClient, tenant: Tenant) -> None:
        response = client.get(_url(tenant, "/bookings/4242"))

        assert response.status_code == 404
        assert response.json()["code"] == "BOOKING_NOT_FOUND"


class TestListRoutes:
    def test_list_with_filters_and_pagination(
        self,
        client: TestClient,
        tenant: Tenant,
        open_court: Court,
        player: User,
        other_player: User,
        future_day: date,
        make_booking: Callable,
    ) -> None:
        for hour in (8, 9, 10):
            make_booking(open_court, player, future_day, time(hour, 0), time(hour + 1, 0))
        make_booking(open_court, other_player, future_day, time(15, 0), time(16, 0))

        response = client.get(
            _url(tenant, "/bookings"),
            params={"client_id": player.id, "per_page": 2, "date": future_day.isoformat()},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["per_page"] == 2
        assert body["has_next"] is True
        assert [item["start_time"] for item in body["items"]] == ["10:00", "09:00"]

    def test_per_page_is_capped(self, client: TestClient, tenant: Tenant) -> None:
        response = client.get(_url(tenant, "/bookings"), params={"per_page": 1000})

        assert response.status_code == 200
        assert response.json()["per_page"] == 100

    def test_pending_presence(
        self,
        client: TestClient,
        tenant: Tenant,
        open_court: Court,
        player: User,
        today: date,
        make_booking: Callable,
    ) -> None:
        stale = make_booking(open_court, player, today - timedelta(days=2), time(10, 0), time(11, 0))
        make_booking(open_court, player, today - timedelta(days=2), time(12, 0), time(13, 0), present=True)

        response = client.get(_url(tenant, "/bookings/pending-presence"))

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["items"]] == [stale.id]

    def test_presence_filter_values(
        self, client: TestClient, tenant: Tenant, open_court: Court, player: User, today: date, make_booking: Callable
    ) -> None:
        make_booking(open_court, player, today, time(10, 0), time(11, 0), present=False)

        absent = client.get(_url(tenant, "/bookings"), params={"present": "false"})
        unchecked = client.get(_url(tenant, "/bookings"), params={"present": "null"})

        assert absent.json()["total"] == 1
        assert unchecked.json()["total"] == 0
