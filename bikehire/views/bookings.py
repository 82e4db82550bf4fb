"""
Booking Related Views
---------------------

Handles submitting bookings, looking them up, moving them through their
lifecycle, and cancelling them on behalf of the customer.
"""

from http import HTTPStatus

from bikehire.serializer import expects, returns, JSendSchema, JSendStatus
from bikehire.serializer.models import BookingDraftSchema, BookingSchema, BookingStatusSchema
from bikehire.service.draft import BookingDraft
from bikehire.service.manager.booking_manager import (
    BookingError, BookingValidationError, RateLimitExceeded, AvailabilityExceeded, RaceCondition, CouponInvalid,
    PersistenceError, SubmissionInProgress, BookingNotFound, InvalidStatusTransition
)
from bikehire.store.records import BookingRecord
from bikehire.views.base import BaseView
from bikehire.views.decorators import match_getter

BOOKING_FAILURES = {
    BookingValidationError: "invalid",
    CouponInvalid: "invalid",
    RateLimitExceeded: "too_many",
    SubmissionInProgress: "too_many",
    AvailabilityExceeded: "conflict",
    RaceCondition: "conflict",
    InvalidStatusTransition: "conflict",
    BookingNotFound: "missing",
    PersistenceError: "unavailable",
}

failure_schemas = {
    "invalid": (JSendSchema(), HTTPStatus.BAD_REQUEST),
    "too_many": (JSendSchema(), HTTPStatus.TOO_MANY_REQUESTS),
    "conflict": (JSendSchema(), HTTPStatus.CONFLICT),
    "missing": (JSendSchema(), HTTPStatus.NOT_FOUND),
    "unavailable": (JSendSchema(), HTTPStatus.SERVICE_UNAVAILABLE),
}


def booking_failure(error: BookingError):
    """Turns a booking error into a named JSend failure."""
    data = {"message": error.message, "reason": type(error).__name__}
    if isinstance(error, BookingValidationError):
        data["errors"] = error.errors
    elif isinstance(error, RateLimitExceeded):
        data["retry_after"] = error.retry_after
    elif isinstance(error, AvailabilityExceeded):
        data["remaining"] = error.remaining

    name = next(name for kind, name in BOOKING_FAILURES.items() if isinstance(error, kind))
    return name, {"status": JSendStatus.FAIL, "data": data}


def get_booking(view: BaseView, booking_id: str):
    return view.store.get_booking(booking_id)


class BookingsView(BaseView):
    """
    Submits a new booking.
    """
    url = "/bookings"

    @expects(BookingDraftSchema())
    @returns(created=(JSendSchema.of(booking=BookingSchema()), HTTPStatus.CREATED), **failure_schemas)
    async def post(self):
        draft = BookingDraft.from_dict(self.request["data"])

        try:
            result = await self.booking_manager.submit(draft, self.request["client_id"])
        except BookingError as error:
            return booking_failure(error)

        return "created", {
            "status": JSendStatus.SUCCESS,
            "data": {"booking": result.serialize()}
        }


class BookingView(BaseView):
    """
    Gets, updates, or cancels a single booking.
    """
    url = "/bookings/{id}"
    name = "booking"
    with_booking = match_getter(get_booking, "booking", booking_id="id")

    @with_booking
    @returns(JSendSchema.of(booking=BookingSchema()))
    async def get(self, booking: BookingRecord):
        return {
            "status": JSendStatus.SUCCESS,
            "data": {"booking": booking.serialize()}
        }

    @with_booking
    @expects(BookingStatusSchema())
    @returns(updated=JSendSchema.of(booking=BookingSchema()), **failure_schemas)
    async def patch(self, booking: BookingRecord):
        try:
            updated = await self.booking_manager.advance(booking.id, self.request["data"]["status"])
        except BookingError as error:
            return booking_failure(error)

        return "updated", {
            "status": JSendStatus.SUCCESS,
            "data": {"booking": updated.serialize()}
        }

    @with_booking
    @returns(cancelled=JSendSchema.of(booking=BookingSchema()), **failure_schemas)
    async def delete(self, booking: BookingRecord):
        if "phone" not in self.request.query:
            return "invalid", {
                "status": JSendStatus.FAIL,
                "data": {"message": "The phone number the booking was made with is required to cancel it."}
            }

        try:
            cancelled = await self.booking_manager.cancel(booking.id, self.request.query["phone"])
        except BookingError as error:
            return booking_failure(error)

        return "cancelled", {
            "status": JSendStatus.SUCCESS,
            "data": {"booking": cancelled.serialize()}
        }
