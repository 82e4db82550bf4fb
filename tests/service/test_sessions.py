from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from bikehire.models.util import SessionType, BookingStatus
from bikehire.service.sessions import (
    contending_slots, slots_overlap, overlapping_slots, usage, check_session_open, SessionClosedError, open_sessions
)
from bikehire.store.records import Slot

DAY = date(2025, 6, 10)
JERUSALEM = ZoneInfo("Asia/Jerusalem")


def local(hour, minute=0, day=DAY):
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=JERUSALEM)


class TestContention:

    def test_morning_contenders(self):
        """Assert that a morning slot contends with the same day's daily session and yesterday's daily session."""
        assert set(contending_slots(Slot(DAY, SessionType.MORNING))) == {
            Slot(DAY, SessionType.MORNING),
            Slot(DAY, SessionType.DAILY),
            Slot(DAY - timedelta(days=1), SessionType.DAILY),
        }

    def test_daily_contenders(self):
        """Assert that a daily slot contends with the same day's morning and yesterday's daily session."""
        assert set(contending_slots(Slot(DAY, SessionType.DAILY))) == {
            Slot(DAY, SessionType.DAILY),
            Slot(DAY, SessionType.MORNING),
            Slot(DAY - timedelta(days=1), SessionType.DAILY),
        }

    def test_previous_morning_does_not_contend(self):
        """Assert that yesterday's morning bikes are back in time for today."""
        assert Slot(DAY - timedelta(days=1), SessionType.MORNING) not in contending_slots(Slot(DAY, SessionType.MORNING))

    def test_unknown_session(self):
        """Assert that an unknown session type is rejected."""
        with pytest.raises(ValueError):
            contending_slots(Slot(DAY, "evening"))

    def test_overlap_is_symmetric(self):
        """Assert that a daily booking overlaps the next day's sessions, and the other way around."""
        today_daily = Slot(DAY, SessionType.DAILY)
        tomorrow_morning = Slot(DAY + timedelta(days=1), SessionType.MORNING)
        assert slots_overlap(today_daily, tomorrow_morning)
        assert slots_overlap(tomorrow_morning, today_daily)
        assert not slots_overlap(Slot(DAY, SessionType.MORNING), tomorrow_morning)

    def test_overlapping_slots_of_daily(self):
        """Assert that the slots sharing bikes with a daily slot include the following day."""
        slots = overlapping_slots(Slot(DAY, SessionType.DAILY))
        assert Slot(DAY + timedelta(days=1), SessionType.MORNING) in slots
        assert Slot(DAY + timedelta(days=1), SessionType.DAILY) in slots
        assert len(slots) == 5

    def test_overlapping_slots_of_morning(self):
        assert set(overlapping_slots(Slot(DAY, SessionType.MORNING))) == set(contending_slots(Slot(DAY, SessionType.MORNING)))


class TestUsage:

    def test_usage_counts_contending_riders(self, fleet_factory, booking_record_factory):
        """Assert that usage sums the riders of every live booking in a contending slot."""
        bikes = fleet_factory(M=4)
        bookings = [
            booking_record_factory(bikes[:1], day=DAY, session=SessionType.MORNING),
            booking_record_factory(bikes[1:2], day=DAY, session=SessionType.DAILY),
            booking_record_factory(bikes[2:3], day=DAY - timedelta(days=1), session=SessionType.DAILY),
            booking_record_factory(bikes[3:], day=DAY - timedelta(days=1), session=SessionType.MORNING),
        ]
        assert usage(Slot(DAY, SessionType.MORNING), bookings) == 3

    def test_usage_ignores_inactive_bookings(self, fleet_factory, booking_record_factory):
        """Assert that cancelled and completed bookings do not hold bikes."""
        bikes = fleet_factory(M=3)
        bookings = [
            booking_record_factory(bikes[:1], day=DAY, status=BookingStatus.CANCELLED),
            booking_record_factory(bikes[1:2], day=DAY, status=BookingStatus.COMPLETED),
            booking_record_factory(bikes[2:], day=DAY, status=BookingStatus.PENDING),
        ]
        assert usage(Slot(DAY, SessionType.MORNING), bookings) == 1


class TestCutOffs:

    def test_past_date(self):
        """Assert that past dates cannot be booked."""
        with pytest.raises(SessionClosedError) as error:
            check_session_open(Slot(DAY - timedelta(days=1), SessionType.DAILY), local(8))
        assert error.value.reason == "pastDate"

    def test_morning_closes_at_ten(self):
        """Assert that today's morning session closes at 10:00 local time."""
        check_session_open(Slot(DAY, SessionType.MORNING), local(9, 59))
        with pytest.raises(SessionClosedError) as error:
            check_session_open(Slot(DAY, SessionType.MORNING), local(10))
        assert error.value.reason == "morningSessionPassed"

    def test_daily_closes_at_noon(self):
        """Assert that today's daily session stays open until noon."""
        check_session_open(Slot(DAY, SessionType.DAILY), local(11))
        with pytest.raises(SessionClosedError) as error:
            check_session_open(Slot(DAY, SessionType.DAILY), local(12, 30))
        assert error.value.reason == "dailySessionPassed"

    def test_cut_off_uses_local_time(self):
        """Assert that the cut-off is judged in the booking timezone, whatever the given timezone."""
        # 07:30 UTC is 10:30 in Jerusalem during summer time
        now = datetime(DAY.year, DAY.month, DAY.day, 7, 30, tzinfo=timezone.utc)
        with pytest.raises(SessionClosedError):
            check_session_open(Slot(DAY, SessionType.MORNING), now)

    def test_future_dates_open(self):
        """Assert that every session is open on a future date, even late at night."""
        assert open_sessions(DAY + timedelta(days=1), local(23)) == [SessionType.MORNING, SessionType.DAILY]

    def test_open_sessions_today(self):
        assert open_sessions(DAY, local(11)) == [SessionType.DAILY]
        assert open_sessions(DAY, local(13)) == []
