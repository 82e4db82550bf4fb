"""
Sessions
--------

Each day is sold as two sessions. The morning session is a bounded early
window, while the daily session takes the whole day and the bike only comes
back the following morning. That gives the following contention rules for a
slot ``(D, S)``:

- every booking at ``(D, S)``
- every booking at ``(D, daily)`` when ``S`` is the morning
- every booking at ``(D, morning)`` when ``S`` is the daily session
- every booking at ``(D-1, daily)``, whose bikes have not been returned yet

Same-day bookings also close a few hours in: the morning session cannot be
booked from 10:00, and the daily session from noon.
"""

from datetime import date, datetime, time, timedelta
from typing import Tuple, Iterable, List, Optional
from zoneinfo import ZoneInfo

from bikehire import config
from bikehire.models.util import SessionType, BookingStatus
from bikehire.store.records import Slot

SESSION_CUTOFFS = {
    SessionType.MORNING: time(hour=10),
    SessionType.DAILY: time(hour=12),
}
"""The local time after which a session can no longer be booked for the same day."""


class SessionClosedError(Exception):

    def __init__(self, message, reason: str):
        super().__init__(message)
        self.reason = reason


def _checked(session) -> SessionType:
    if not isinstance(session, SessionType):
        raise ValueError(f"Unknown session type {session!r}.")
    return session


def contending_slots(slot: Slot) -> Tuple[Slot, ...]:
    """The slots whose bookings count against the capacity of the given slot."""
    session = _checked(slot.session)
    other = SessionType.DAILY if session is SessionType.MORNING else SessionType.MORNING

    return (
        slot,
        Slot(slot.date, other),
        Slot(slot.date - timedelta(days=1), SessionType.DAILY),
    )


def slots_overlap(first: Slot, second: Slot) -> bool:
    """Whether two slots can ever need the same physical bike."""
    return first in contending_slots(second) or second in contending_slots(first)


def overlapping_slots(slot: Slot) -> Tuple[Slot, ...]:
    """
    Every slot that shares bikes with the given one. This is the
    contending set plus the next day's sessions when the slot is a daily one.
    """
    following = slot.date + timedelta(days=1)
    later = (Slot(following, SessionType.MORNING), Slot(following, SessionType.DAILY))
    if _checked(slot.session) is SessionType.DAILY:
        return contending_slots(slot) + later
    return contending_slots(slot)


def usage(slot: Slot, bookings: Iterable) -> int:
    """The number of riders from live bookings that contend with the slot."""
    contenders = contending_slots(slot)
    return sum(
        len(booking.riders) for booking in bookings
        if booking.status not in BookingStatus.inactive_types() and booking.slot in contenders
    )


def local_now(now: Optional[datetime] = None) -> datetime:
    """The current time in the booking timezone."""
    zone = ZoneInfo(config.booking_timezone)
    if now is None:
        return datetime.now(zone)
    return now.astimezone(zone)


def check_session_open(slot: Slot, now: Optional[datetime] = None):
    """
    Asserts that the slot can still be booked.

    :raises SessionClosedError: If the date is in the past, or today's session has closed.
    """
    current = local_now(now)
    today = current.date()

    if slot.date < today:
        raise SessionClosedError(f"{slot.date} is in the past.", "pastDate")

    if slot.date == today and current.time() >= SESSION_CUTOFFS[_checked(slot.session)]:
        raise SessionClosedError(
            f"The {slot.session.value} session can only be booked for today "
            f"before {SESSION_CUTOFFS[slot.session]:%H:%M}.",
            f"{slot.session.value}SessionPassed"
        )


def open_sessions(day: date, now: Optional[datetime] = None) -> List[SessionType]:
    """Gets the sessions that can still be booked on the given day."""
    sessions = []
    for session in SessionType:
        try:
            check_session_open(Slot(day, session), now)
        except SessionClosedError:
            continue
        sessions.append(session)
    return sessions
