from datetime import timedelta

from bikehire.config import api_root
from bikehire.models.util import SessionType
from bikehire.service.sessions import local_now
from bikehire.store.base import StoreUnavailableError


class TestAvailabilityCalendarView:

    async def test_default_range(self, client, fleet_factory):
        """Assert that the calendar starts today and covers two weeks by default."""
        fleet_factory(M=2)
        response = await client.get(f"{api_root}/availability")
        response_data = await response.json()

        assert response.status == 200
        calendar = response_data["data"]["calendar"]
        assert len(calendar) == 14
        assert calendar[0]["date"] == local_now().date().isoformat()
        assert calendar[0]["sessions"]["morning"] == {"booked": 0, "remaining": 2, "occupancy": "low"}

    async def test_range(self, client, fleet_factory, booking_record_factory, memory_store, booking_day):
        bikes = fleet_factory(M=2)
        memory_store.add_booking(booking_record_factory(bikes, day=booking_day, session=SessionType.DAILY))

        response = await client.get(f"{api_root}/availability", params={
            "start": booking_day.isoformat(), "end": (booking_day + timedelta(days=1)).isoformat()
        })
        calendar = (await response.json())["data"]["calendar"]

        assert [day["sessions"]["daily"]["occupancy"] for day in calendar] == ["full", "full"]

    async def test_bad_dates(self, client):
        response = await client.get(f"{api_root}/availability", params={"start": "next-tuesday"})
        assert response.status == 400

    async def test_backwards_range(self, client, booking_day):
        response = await client.get(f"{api_root}/availability", params={
            "start": booking_day.isoformat(), "end": (booking_day - timedelta(days=1)).isoformat()
        })
        assert response.status == 400

    async def test_range_too_long(self, client, booking_day):
        response = await client.get(f"{api_root}/availability", params={
            "start": booking_day.isoformat(), "end": (booking_day + timedelta(days=100)).isoformat()
        })
        assert response.status == 400


class TestSlotAvailabilityView:

    async def test_slot(self, client, fleet_factory, booking_day):
        fleet_factory(M=2, L=1)
        response = await client.get(f"{api_root}/availability/{booking_day.isoformat()}/morning")
        availability = (await response.json())["data"]["availability"]

        assert response.status == 200
        assert availability["remaining"] == 3
        assert availability["open"] is True
        sizes = {entry["size"]: entry for entry in availability["sizes"]}
        assert sizes["M"]["available"] == 2
        assert sizes["L"]["available"] == 1
        assert sizes["XS"]["available"] == 0
        assert sizes["M"]["min_height"] == 156

    async def test_past_slot_closed(self, client, fleet_factory):
        fleet_factory(M=1)
        yesterday = local_now().date() - timedelta(days=1)
        response = await client.get(f"{api_root}/availability/{yesterday.isoformat()}/daily")
        assert (await response.json())["data"]["availability"]["open"] is False

    async def test_bad_session(self, client, booking_day):
        response = await client.get(f"{api_root}/availability/{booking_day.isoformat()}/evening")
        assert response.status == 400

    async def test_bad_date(self, client):
        response = await client.get(f"{api_root}/availability/2025-13-45/morning")
        assert response.status == 400


async def store_down(*args, **kwargs):
    raise StoreUnavailableError("connection reset")


class TestStoreOutage:

    async def test_calendar_unavailable(self, client, memory_store, monkeypatch):
        monkeypatch.setattr(memory_store, "get_bikes", store_down)
        response = await client.get(f"{api_root}/availability")
        response_data = await response.json()

        assert response.status == 503
        assert response_data["status"] == "fail"
        assert response_data["data"]["reason"] == "StoreUnavailableError"

    async def test_slot_unavailable(self, client, memory_store, monkeypatch, booking_day):
        """Assert that an outage is reported as such, not as a server error."""
        monkeypatch.setattr(memory_store, "get_bikes", store_down)
        response = await client.get(f"{api_root}/availability/{booking_day.isoformat()}/morning")
        response_data = await response.json()

        assert response.status == 503
        assert "message" in response_data["data"]
