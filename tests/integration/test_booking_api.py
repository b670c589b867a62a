from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps.database import get_booking_service
from app.core.exceptions import StoreError, StoreTimeoutError
from app.main import app
from app.repositories.booking import BookingStore
from app.services.booking import BookingService
from tests.utils import parse_dt, shop_time


@pytest.fixture
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


def payload(name="Carlos", at="2024-05-15T10:00:00-03:00", value="45.00") -> dict:
    return {"clientName": name, "scheduledAt": at, "value": value}


@pytest.mark.integration
class TestCreateBooking:
    @pytest.mark.asyncio
    async def test_create_booking(self, client):
        response = await client.post("/bookings", json=payload())

        assert response.status_code == 201
        data = response.json()
        assert data["id"] is not None
        assert data["clientName"] == "Carlos"
        assert Decimal(data["value"]) == Decimal("45.00")
        assert parse_dt(data["scheduledAt"]) == shop_time(2024, 5, 15, 10)

    @pytest.mark.asyncio
    async def test_value_is_optional(self, client):
        response = await client.post(
            "/bookings",
            json={"clientName": "Carlos", "scheduledAt": "2024-05-15T10:00:00-03:00"},
        )

        assert response.status_code == 201
        assert Decimal(response.json()["value"]) == Decimal("0")

    @pytest.mark.asyncio
    async def test_double_booking_is_rejected(self, client):
        first = await client.post("/bookings", json=payload("Carlos"))
        second = await client.post("/bookings", json=payload("Bruno"))

        assert first.status_code == 201
        assert second.status_code == 409
        assert "already booked" in second.json()["detail"]

        listed = (await client.get("/bookings")).json()
        assert [b["clientName"] for b in listed] == ["Carlos"]

    @pytest.mark.asyncio
    async def test_same_instant_in_utc_is_rejected(self, client):
        await client.post("/bookings", json=payload(at="2024-05-15T10:00:00-03:00"))

        response = await client.post(
            "/bookings", json=payload("Bruno", at="2024-05-15T13:00:00Z")
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_one_second_apart_is_admitted(self, client):
        first = await client.post("/bookings", json=payload("Carlos"))
        second = await client.post(
            "/bookings", json=payload("Bruno", at="2024-05-15T10:00:01-03:00")
        )

        assert first.status_code == 201
        assert second.status_code == 201

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"scheduledAt": "2024-05-15T10:00:00-03:00"},
            {"clientName": "Carlos"},
            payload(name="A"),
            payload(value="-10.00"),
            payload(at="not-a-date"),
        ],
    )
    async def test_invalid_input_is_bad_request(self, client, body):
        response = await client.post("/bookings", json=body)

        assert response.status_code == 400
        assert isinstance(response.json()["detail"], list)
        assert (await client.get("/bookings")).json() == []


@pytest.mark.integration
class TestReadBookings:
    @pytest.mark.asyncio
    async def test_list_is_ordered_by_time(self, client, add_booking):
        await add_booking("Evening", shop_time(2024, 5, 15, 19))
        await add_booking("Morning", shop_time(2024, 5, 15, 8))
        await add_booking("Yesterday", shop_time(2024, 5, 14, 17))

        response = await client.get("/bookings")

        assert response.status_code == 200
        assert [b["clientName"] for b in response.json()] == [
            "Yesterday",
            "Morning",
            "Evening",
        ]

    @pytest.mark.asyncio
    async def test_get_booking(self, client, add_booking):
        booking = await add_booking("Carlos", shop_time(2024, 5, 15, 10), "30.00")

        response = await client.get(f"/bookings/{booking.id}")

        assert response.status_code == 200
        assert response.json()["clientName"] == "Carlos"

    @pytest.mark.asyncio
    async def test_get_missing_booking(self, client):
        response = await client.get("/bookings/999")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_non_numeric_id_is_bad_request(self, client):
        response = await client.get("/bookings/abc")

        assert response.status_code == 400


@pytest.mark.integration
class TestUpdateBooking:
    @pytest.mark.asyncio
    async def test_update_keeping_time(self, client, add_booking):
        booking = await add_booking("Carlos", shop_time(2024, 5, 15, 10), "45.00")

        response = await client.put(
            f"/bookings/{booking.id}",
            json=payload("Carlos Souza", value="50.00"),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["clientName"] == "Carlos Souza"
        assert Decimal(data["value"]) == Decimal("50.00")
        assert parse_dt(data["scheduledAt"]) == shop_time(2024, 5, 15, 10)

    @pytest.mark.asyncio
    async def test_update_onto_taken_slot(self, client, add_booking):
        await add_booking("Carlos", shop_time(2024, 5, 15, 10))
        other = await add_booking("Bruno", shop_time(2024, 5, 15, 11))

        response = await client.put(f"/bookings/{other.id}", json=payload("Bruno"))

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_update_missing_booking(self, client):
        response = await client.put("/bookings/999", json=payload())

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_missing_booking_onto_taken_slot(self, client, add_booking):
        await add_booking("Carlos", shop_time(2024, 5, 15, 10))

        response = await client.put(
            "/bookings/999", json=payload("Bruno", at="2024-05-15T10:00:00-03:00")
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_with_invalid_body(self, client, add_booking):
        booking = await add_booking("Carlos", shop_time(2024, 5, 15, 10))

        response = await client.put(f"/bookings/{booking.id}", json=payload(name=""))

        assert response.status_code == 400


@pytest.mark.integration
class TestDeleteBooking:
    @pytest.mark.asyncio
    async def test_delete_then_not_found(self, client, add_booking):
        booking = await add_booking("Carlos", shop_time(2024, 5, 15, 10))
        booking_id = booking.id

        deleted = await client.delete(f"/bookings/{booking_id}")
        again = await client.delete(f"/bookings/{booking_id}")

        assert deleted.status_code == 204
        assert again.status_code == 404
        assert (await client.get("/bookings")).json() == []


@pytest.mark.integration
class TestDailyViews:
    @pytest.mark.asyncio
    async def test_schedule(self, client, add_booking):
        await add_booking("Morning", shop_time(2024, 5, 15, 9), "35.00")
        await add_booking("Afternoon", shop_time(2024, 5, 15, 15), "40.50")
        await add_booking("Tomorrow", shop_time(2024, 5, 16, 9), "99.00")

        response = await client.get("/bookings/schedule", params={"day": "2024-05-15"})

        assert response.status_code == 200
        data = response.json()
        assert data["day"] == "2024-05-15"
        assert data["bookingCount"] == 2
        assert Decimal(data["totalValue"]) == Decimal("75.50")
        assert [b["clientName"] for b in data["bookings"]] == ["Morning", "Afternoon"]

    @pytest.mark.asyncio
    async def test_schedule_requires_day(self, client):
        response = await client.get("/bookings/schedule")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_slots(self, client, add_booking):
        booking = await add_booking("Carlos", shop_time(2024, 5, 15, 9))

        response = await client.get("/bookings/slots", params={"day": "2024-05-15"})

        assert response.status_code == 200
        slots = response.json()["slots"]
        assert len(slots) == 28
        booked = [s for s in slots if not s["available"]]
        assert [s["label"] for s in booked] == ["09:00"]
        assert booked[0]["bookingId"] == booking.id

    @pytest.mark.asyncio
    async def test_conflict_check(self, client, add_booking):
        booking = await add_booking("Carlos", shop_time(2024, 5, 15, 10))

        taken = await client.get(
            "/bookings/conflicts", params={"scheduledAt": "2024-05-15T10:00:00-03:00"}
        )
        free = await client.get(
            "/bookings/conflicts", params={"scheduledAt": "2024-05-15T10:30:00-03:00"}
        )

        assert taken.status_code == 200
        assert taken.json()["admitted"] is False
        assert taken.json()["conflicting"]["id"] == booking.id
        assert free.json()["admitted"] is True
        assert free.json()["conflicting"] is None

    @pytest.mark.asyncio
    async def test_conflict_check_with_bad_date(self, client):
        response = await client.get(
            "/bookings/conflicts", params={"scheduledAt": "someday"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_conflict_check_rejects_unix_timestamp(self, client):
        response = await client.get(
            "/bookings/conflicts", params={"scheduledAt": "1700000000"}
        )

        assert response.status_code == 400


@pytest.mark.integration
class TestStoreFailures:
    @pytest.fixture
    def failing_store(self):
        store = Mock(spec=BookingStore)
        store.find_all = AsyncMock(side_effect=StoreError())
        store.find_by_exact_time = AsyncMock(side_effect=StoreError())
        return store

    @pytest.fixture
    def override_service(self, failing_store):
        service = BookingService(Mock(), store=failing_store)
        app.dependency_overrides[get_booking_service] = lambda: service
        return service

    @pytest.mark.asyncio
    async def test_list_failure_is_server_error(self, client, override_service):
        response = await client.get("/bookings")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch bookings"

    @pytest.mark.asyncio
    async def test_create_failure_is_server_error(self, client, override_service):
        response = await client.post("/bookings", json=payload())

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to create booking"

    @pytest.mark.asyncio
    async def test_timeout_is_gateway_timeout(
        self, client, override_service, failing_store
    ):
        failing_store.find_all.side_effect = StoreTimeoutError("find_all", 5.0)

        response = await client.get("/bookings")

        assert response.status_code == 504

    @pytest.mark.asyncio
    async def test_unexpected_error_rolls_back(self, client, failing_store):
        db = AsyncMock()
        failing_store.find_all.side_effect = RuntimeError("lost connection to 10.0.0.5")
        app.dependency_overrides[get_booking_service] = lambda: BookingService(
            db, store=failing_store
        )

        response = await client.get("/bookings")

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch bookings"
        db.rollback.assert_awaited_once()
