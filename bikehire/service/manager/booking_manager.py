"""
Booking Manager
===============

Handles the submission of bookings, and moves them through their lifecycle
afterwards.

A submission goes through a fixed set of stages. The client is rate limited
first. Then everything the customer saw is checked again straight from the
store, since the numbers on their screen may be minutes old. Bikes are picked
rider by rider, and the whole booking is written in one go. Finally the
post-commit actions run, and those are allowed to fail.

Nothing is locked between the stages. Two customers can pass the checks for
the last bike at the same time; the store refuses the second write, and that
customer is told to try again.

Responsibilities
----------------

- submit a booking
- advance a booking's status
- cancel a booking on behalf of the customer
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, List, Optional, Set, Callable

from bikehire import logger, config
from bikehire.events import EventHub, EventList
from bikehire.models.util import BookingStatus, BikeStatus
from bikehire.pricing import get_price
from bikehire.service.assignment import AssignmentEngine
from bikehire.service.availability import AvailabilityCache, Reconciliation, seat_riders
from bikehire.service.coupons import quote_coupon
from bikehire.service.draft import BookingDraft, validate_draft
from bikehire.service.post_commit import PostCommitAction, SideEffectResult, run_post_commit
from bikehire.service.rebuildable import Rebuildable
from bikehire.service.sessions import check_session_open, SessionClosedError
from bikehire.service.sizing import SizeMap, FallbackPolicy
from bikehire.store.base import (
    InventoryStore, StoreError, BikeConflictError, CouponNotFoundError, CouponUsedError
)
from bikehire.store.records import NewBooking, RiderRecord, RateLimitDecision, BookingRecord, CouponQuote


class BookingError(Exception):

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class BookingValidationError(BookingError):

    def __init__(self, message, errors: Dict[str, List[str]] = None):
        super().__init__(message)
        self.errors = errors or {}


class RateLimitExceeded(BookingError):

    def __init__(self, message, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class AvailabilityExceeded(BookingError):

    def __init__(self, message, remaining: int):
        super().__init__(message)
        self.remaining = remaining


class RaceCondition(BookingError):
    """Raised when the bikes were taken between the checks and the write."""


class CouponInvalid(BookingError):
    pass


class PersistenceError(BookingError):
    """Raised when the store fails for a reason other than a bike conflict."""


class SubmissionInProgress(BookingError):
    """Raised when a client submits again before their last attempt finished or cooled down."""


class BookingNotFound(BookingError):
    pass


class InvalidStatusTransition(BookingError):
    pass


class SubmissionState(str, Enum):
    IDLE = "idle"
    RATE_LIMITING = "rate_limiting"
    REVALIDATING = "revalidating"
    ASSIGNING = "assigning"
    PERSISTING = "persisting"
    SIDE_EFFECTS = "side_effects"
    DONE = "done"
    ABORTED = "aborted"


class BookingEvent(EventList):

    def state_changed(self, client_id: str, state: SubmissionState):
        """A submission moved on to the next stage."""

    def booking_created(self, booking_id: str, booking: NewBooking):
        """A booking was written to the store."""

    def submission_aborted(self, client_id: str, state: SubmissionState, error: BookingError):
        """A submission was abandoned during the given stage."""

    def status_changed(self, booking_id: str, old: BookingStatus, new: BookingStatus):
        """A booking moved through its lifecycle."""


@dataclass
class SubmissionResult:
    booking_id: str
    booking: NewBooking
    side_effects: List[SideEffectResult] = field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return [f"{effect.name}: {effect.error}" for effect in self.side_effects if not effect.succeeded]

    def serialize(self):
        return {
            "id": self.booking_id,
            "date": self.booking.date,
            "session": self.booking.session,
            "status": self.booking.status,
            "total_price": self.booking.total_price,
            "coupon_code": self.booking.coupon_code,
            "riders": [
                {"name": rider.name, "height": rider.height, "bike_id": rider.bike_id, "size": rider.size}
                for rider in self.booking.riders
            ],
            "warnings": self.warnings,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingManager(Rebuildable):

    def __init__(self, store: InventoryStore, cache: AvailabilityCache = None,
                 policy: FallbackPolicy = None, cooldown: timedelta = config.submission_cooldown,
                 size_map: SizeMap = None, actions: List[PostCommitAction] = None,
                 clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.cache = cache or AvailabilityCache(store)
        self.policy = policy or FallbackPolicy()
        self.cooldown = cooldown
        self.size_map = size_map
        self.hub = EventHub(BookingEvent)
        self.states: Dict[str, SubmissionState] = {}
        """The stage of the most recent submission of each client."""

        self._actions = actions
        self._clock = clock
        self._in_flight: Set[str] = set()
        self._last_attempt: Dict[str, datetime] = {}

    async def _rebuild(self):
        """Loads the height ranges from the store, falling back to the default chart."""
        ranges = await self.store.get_size_ranges()
        self.size_map = SizeMap(ranges or None)
        logger.info("Loaded %d height ranges", len(self.size_map.ranges))

    async def submit(self, draft: BookingDraft, client_id: str) -> SubmissionResult:
        """
        Submits a booking on behalf of a client.

        :raises SubmissionInProgress: If the client is already submitting, or is cooling down.
        :raises RateLimitExceeded: If the client made too many recent attempts.
        :raises BookingValidationError: If the draft is invalid, or the session has closed.
        :raises CouponInvalid: If the applied coupon does not exist or was used.
        :raises AvailabilityExceeded: If the slot cannot fit the riders.
        :raises RaceCondition: If the bikes were taken by someone else meanwhile.
        :raises PersistenceError: If the store failed.
        """
        now = self._clock()

        if client_id in self._in_flight:
            raise SubmissionInProgress("A booking is already being submitted.")

        last_attempt = self._last_attempt.get(client_id)
        if last_attempt is not None and now - last_attempt < self.cooldown:
            raise SubmissionInProgress(f"Please wait {self.cooldown.total_seconds():g} seconds between attempts.")

        self._in_flight.add(client_id)
        self._set_state(client_id, SubmissionState.IDLE)

        try:
            self._set_state(client_id, SubmissionState.RATE_LIMITING)
            await self._check_rate_limit(client_id)

            successful = False
            try:
                result = await self._book(draft, client_id, now)
                successful = True
            finally:
                await self._record_attempt(client_id, successful)

        except BookingError as e:
            self._abort(client_id, e)
            raise
        except StoreError as e:
            error = PersistenceError(f"The store failed: {e}")
            self._abort(client_id, error)
            raise error from e
        finally:
            self._in_flight.discard(client_id)
            self._last_attempt[client_id] = self._clock()

        self._set_state(client_id, SubmissionState.DONE)
        return result

    async def _book(self, draft: BookingDraft, client_id: str, now: datetime) -> SubmissionResult:
        self._set_state(client_id, SubmissionState.REVALIDATING)
        coupon = await self._revalidate(draft, now)

        self._set_state(client_id, SubmissionState.ASSIGNING)
        riders = await self._assign(draft)

        self._set_state(client_id, SubmissionState.PERSISTING)
        booking = NewBooking(
            date=draft.date,
            session=draft.session,
            riders=riders,
            phone=draft.phone.strip(),
            email=draft.email.strip(),
            total_price=get_price(draft.session, len(riders), coupon),
            coupon_code=coupon.code if coupon else None,
            client_id=client_id,
        )
        booking_id = await self._persist(booking)
        self.hub.booking_created(booking_id, booking)

        self._set_state(client_id, SubmissionState.SIDE_EFFECTS)
        side_effects = await run_post_commit(self.store, booking_id, booking, self._actions, now)

        return SubmissionResult(booking_id, booking, side_effects)

    async def _check_rate_limit(self, client_id: str):
        try:
            decision = await self.store.check_rate_limit(client_id)
        except StoreError as e:
            logger.warning("Could not check the rate limit for %s, letting it through: %s", client_id, e)
            decision = RateLimitDecision(True)

        if not decision.allowed:
            raise RateLimitExceeded(
                f"Too many booking attempts, try again in {decision.retry_after_seconds} seconds.",
                decision.retry_after_seconds
            )

    async def _record_attempt(self, client_id: str, successful: bool):
        try:
            await self.store.record_attempt(client_id, successful)
        except StoreError as e:
            logger.warning("Could not record the booking attempt of %s: %s", client_id, e)

    async def _revalidate(self, draft: BookingDraft, now: datetime) -> Optional[CouponQuote]:
        errors = validate_draft(draft)
        if errors:
            raise BookingValidationError("The booking has invalid fields.", errors)

        try:
            check_session_open(draft.slot, now)
        except SessionClosedError as e:
            raise BookingValidationError(str(e), {"session": [e.reason]})

        coupon = None
        if draft.coupon_code:
            try:
                coupon = await quote_coupon(self.store, draft.coupon_code)
            except (CouponNotFoundError, CouponUsedError) as e:
                raise CouponInvalid(f"Coupon {draft.coupon_code} cannot be used: {e}")
            except StoreError as e:
                raise PersistenceError(f"Could not check the coupon: {e}")

        try:
            size_map = await self.get_size_map()
            reconciliation = await self.cache.compute(draft.slot)
        except StoreError as e:
            raise PersistenceError(f"Could not read availability: {e}")

        self._check_capacity(draft, reconciliation, size_map)
        return coupon

    def _check_capacity(self, draft: BookingDraft, reconciliation: Reconciliation, size_map: SizeMap):
        if len(draft.riders) > reconciliation.remaining:
            raise AvailabilityExceeded(
                f"Only {reconciliation.remaining} bikes are left for {draft.slot}.",
                reconciliation.remaining
            )

        seated, _ = seat_riders(draft.heights, reconciliation.available, size_map, self.policy)
        if not seated:
            raise AvailabilityExceeded(
                f"There are no bikes left in the sizes these riders need for {draft.slot}.",
                reconciliation.remaining
            )

    async def _assign(self, draft: BookingDraft) -> List[RiderRecord]:
        slot = draft.slot
        try:
            fleet = await self.store.get_bikes()
            commitments = await self.store.get_commitments(
                slot.date - timedelta(days=1), slot.date + timedelta(days=1)
            )
        except StoreError as e:
            raise PersistenceError(f"Could not read the fleet: {e}")

        engine = AssignmentEngine(await self.get_size_map(), fleet, commitments, self.policy)
        excluded = set()
        riders = []

        for rider in draft.riders:
            bike = engine.find_best_bike(rider.height, slot, excluded)
            if bike is None and engine.held_for_following_day(rider.height, slot, excluded):
                remaining = sum(len(bikes) for bikes in engine.free_bikes(slot).values())
                raise AvailabilityExceeded(
                    f"The bikes {rider.name.strip()} needs are booked for the day after {slot}.",
                    remaining
                )
            if bike is None:
                raise RaceCondition(f"A bike for {rider.name.strip()} was just taken, please try again.")
            excluded.add(bike.id)
            riders.append(RiderRecord(rider.name.strip(), rider.height, bike.id, bike.size))

        return riders

    async def _persist(self, booking: NewBooking) -> str:
        try:
            return await self.store.create_booking(booking)
        except BikeConflictError as e:
            raise RaceCondition(f"Bikes {e.bike_ids} were booked by someone else, please try again.")
        except StoreError as e:
            raise PersistenceError(f"Could not save the booking: {e}")

    async def get_size_map(self) -> SizeMap:
        """The height ranges in use, loading them from the store on first use."""
        if self.size_map is None:
            await self._rebuild()
        return self.size_map

    def _set_state(self, client_id: str, state: SubmissionState):
        self.states[client_id] = state
        self.hub.state_changed(client_id, state)

    def _abort(self, client_id: str, error: BookingError):
        state = self.states[client_id]
        self._set_state(client_id, SubmissionState.ABORTED)
        logger.info("Booking for %s aborted while %s: %s", client_id, state.value, error.message)
        self.hub.submission_aborted(client_id, state, error)

    async def get(self, booking_id: str) -> BookingRecord:
        """
        :raises BookingNotFound: If there is no such booking.
        """
        try:
            booking = await self.store.get_booking(booking_id)
        except StoreError as e:
            raise PersistenceError(f"Could not read the booking: {e}")

        if booking is None:
            raise BookingNotFound(f"No booking with id {booking_id}.")
        return booking

    async def advance(self, booking_id: str, status: BookingStatus) -> BookingRecord:
        """
        Moves a booking forward in its lifecycle.

        :raises BookingNotFound: If there is no such booking.
        :raises InvalidStatusTransition: If the booking cannot move to the given status.
        """
        booking = await self.get(booking_id)
        previous = booking.status
        if not previous.can_become(status):
            raise InvalidStatusTransition(
                f"A {previous.value} booking cannot become {status.value}."
            )

        try:
            updated = await self.store.update_booking_status(booking_id, status)
        except StoreError as e:
            raise PersistenceError(f"Could not update the booking: {e}")

        self.hub.status_changed(booking_id, previous, status)

        if not updated.is_live:
            await self._release_bikes(updated)

        return updated

    async def cancel(self, booking_id: str, phone: str) -> BookingRecord:
        """
        Cancels a booking for a customer, who proves it is theirs with
        the phone number they booked with.

        :raises BookingNotFound: If there is no such booking, or the phone does not match.
        :raises InvalidStatusTransition: If the booking is past the point of cancelling.
        """
        booking = await self.get(booking_id)
        if booking.phone.strip() != phone.strip():
            raise BookingNotFound(f"No booking with id {booking_id} for that phone.")
        return await self.advance(booking_id, BookingStatus.CANCELLED)

    async def _release_bikes(self, booking: BookingRecord):
        """Puts the rented bikes of a finished booking back into service."""
        held = {rider.bike_id for rider in booking.riders if rider.bike_id is not None}
        try:
            rented = [
                bike.id for bike in await self.store.get_bikes()
                if bike.id in held and bike.status is BikeStatus.RENTED
            ]
            if rented:
                await self.store.set_bike_status(rented, BikeStatus.AVAILABLE)
        except StoreError as e:
            logger.warning("Could not release the bikes of booking %s: %s", booking.id, e)
