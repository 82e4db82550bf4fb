from bikehire.models.util import BikeStatus, SessionType
from bikehire.service.post_commit import run_post_commit, PostCommitAction, DEFAULT_ACTIONS
from bikehire.service.sessions import local_now
from bikehire.store.records import NewBooking, RiderRecord


def new_booking(day, bike_ids=(1,), coupon_code=None, session=None):
    return NewBooking(
        date=day,
        session=session or SessionType.MORNING,
        riders=[RiderRecord("Dana", 165, bike_id) for bike_id in bike_ids],
        phone="0501234567",
        email="dana@example.com",
        coupon_code=coupon_code,
    )


async def _fail(store, booking_id, booking):
    raise RuntimeError("boom")


class TestPostCommit:

    async def test_no_actions_for_plain_future_booking(self, memory_store, booking_day):
        """Assert that a future booking without a coupon has nothing to do after the write."""
        assert await run_post_commit(memory_store, "b1", new_booking(booking_day)) == []

    async def test_redeems_coupon(self, memory_store, booking_day):
        memory_store.add_coupon("SUMMER", 10)
        results = await run_post_commit(memory_store, "b1", new_booking(booking_day, coupon_code="SUMMER"))
        assert [(r.name, r.succeeded) for r in results] == [("redeem_coupon", True)]
        assert memory_store.coupons["SUMMER"]["used_by_booking_id"] == "b1"

    async def test_same_day_bikes_rented(self, memory_store, fleet_factory):
        """Assert that bikes of a same-day booking are handed out straight away."""
        bikes = fleet_factory(M=2)
        today = local_now().date()
        results = await run_post_commit(memory_store, "b1", new_booking(today, bike_ids=[bikes[0].id]))

        assert [(r.name, r.succeeded) for r in results] == [("mark_bikes_rented", True)]
        assert memory_store.bikes[bikes[0].id].status is BikeStatus.RENTED
        assert memory_store.bikes[bikes[1].id].status is BikeStatus.AVAILABLE

    async def test_failures_become_warnings(self, memory_store, booking_day):
        """Assert that a failing action does not stop the actions after it."""
        actions = [PostCommitAction("explode", _fail)] + DEFAULT_ACTIONS
        memory_store.add_coupon("SUMMER", 10)

        results = await run_post_commit(memory_store, "b1", new_booking(booking_day, coupon_code="SUMMER"), actions)

        assert [(r.name, r.succeeded, r.error) for r in results] == [
            ("explode", False, "boom"),
            ("redeem_coupon", True, None),
        ]

    async def test_used_coupon_is_a_warning(self, memory_store, booking_day):
        memory_store.add_coupon("SUMMER", 10)
        await memory_store.mark_coupon_used("SUMMER", "b0")
        results = await run_post_commit(memory_store, "b1", new_booking(booking_day, coupon_code="SUMMER"))
        assert not results[0].succeeded
