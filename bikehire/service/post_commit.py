"""
Post-commit actions run after a booking has been written. None of them can
undo the booking: each one is run on its own, and a failure is logged and
reported back as a warning while the remaining actions still run.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from bikehire import logger
from bikehire.models.util import BikeStatus
from bikehire.service.coupons import redeem_coupon
from bikehire.service.sessions import local_now
from bikehire.store.base import InventoryStore
from bikehire.store.records import NewBooking


@dataclass
class SideEffectResult:
    name: str
    succeeded: bool
    error: Optional[str] = None


@dataclass
class PostCommitAction:
    name: str
    run: Callable[[InventoryStore, str, NewBooking], Awaitable[None]]
    applies: Callable[[NewBooking, datetime], bool] = lambda booking, now: True


async def _redeem(store: InventoryStore, booking_id: str, booking: NewBooking):
    await redeem_coupon(store, booking.coupon_code, booking_id)


async def _hand_out_bikes(store: InventoryStore, booking_id: str, booking: NewBooking):
    await store.set_bike_status(booking.bike_ids, BikeStatus.RENTED)


def _is_same_day(booking: NewBooking, now: datetime) -> bool:
    return booking.date == local_now(now).date() and bool(booking.bike_ids)


DEFAULT_ACTIONS = [
    PostCommitAction("redeem_coupon", _redeem, lambda booking, now: booking.coupon_code is not None),
    PostCommitAction("mark_bikes_rented", _hand_out_bikes, _is_same_day),
]


async def run_post_commit(store: InventoryStore, booking_id: str, booking: NewBooking,
                          actions: List[PostCommitAction] = None, now: datetime = None) -> List[SideEffectResult]:
    """Runs each applicable action in order, never raising."""
    results = []
    for action in (actions if actions is not None else DEFAULT_ACTIONS):
        if not action.applies(booking, now):
            continue
        try:
            await action.run(store, booking_id, booking)
        except Exception as e:
            logger.warning("Post-commit action %s failed for booking %s: %s", action.name, booking_id, e)
            results.append(SideEffectResult(action.name, False, str(e)))
        else:
            results.append(SideEffectResult(action.name, True))
    return results
