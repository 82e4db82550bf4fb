"""
Availability Related Views
--------------------------

The booking calendar, and the bikes left in each size for a single slot.
"""

from datetime import date, timedelta
from http import HTTPStatus

from bikehire.models.util import SessionType
from bikehire.serializer import returns, JSendSchema, JSendStatus, Many
from bikehire.serializer.models import CalendarDaySchema, SlotAvailabilitySchema
from bikehire.service.sessions import local_now, open_sessions
from bikehire.store.base import StoreError
from bikehire.store.records import Slot
from bikehire.views.base import BaseView

DEFAULT_SPAN = timedelta(days=13)
MAX_SPAN = timedelta(days=62)


def store_failure(error: StoreError):
    return "unavailable", {
        "status": JSendStatus.FAIL,
        "data": {"message": f"Availability cannot be read right now: {error}", "reason": type(error).__name__}
    }


class AvailabilityCalendarView(BaseView):
    """
    Gets how full every session is between two dates.
    """
    url = "/availability"

    @returns(
        calendar=JSendSchema.of(calendar=Many(CalendarDaySchema())),
        invalid_range=(JSendSchema(), HTTPStatus.BAD_REQUEST),
        unavailable=(JSendSchema(), HTTPStatus.SERVICE_UNAVAILABLE),
    )
    async def get(self):
        try:
            start = date.fromisoformat(self.request.query["start"]) if "start" in self.request.query \
                else local_now().date()
            end = date.fromisoformat(self.request.query["end"]) if "end" in self.request.query \
                else start + DEFAULT_SPAN
        except ValueError as e:
            return "invalid_range", {
                "status": JSendStatus.FAIL,
                "data": {"message": "Dates must be given as YYYY-MM-DD.", "errors": [str(e)]}
            }

        if end < start or end - start > MAX_SPAN:
            return "invalid_range", {
                "status": JSendStatus.FAIL,
                "data": {"message": f"The end date must be within {MAX_SPAN.days} days after the start date."}
            }

        try:
            calendar = await self.availability_cache.calendar(start, end)
        except StoreError as error:
            return store_failure(error)

        return "calendar", {
            "status": JSendStatus.SUCCESS,
            "data": {"calendar": calendar}
        }


class SlotAvailabilityView(BaseView):
    """
    Gets the bikes left of each size for a date and session.
    """
    url = "/availability/{date}/{session}"
    name = "slot_availability"

    @returns(
        availability=JSendSchema.of(availability=SlotAvailabilitySchema()),
        invalid_slot=(JSendSchema(), HTTPStatus.BAD_REQUEST),
        unavailable=(JSendSchema(), HTTPStatus.SERVICE_UNAVAILABLE),
    )
    async def get(self):
        try:
            slot = Slot(
                date.fromisoformat(self.request.match_info["date"]),
                SessionType(self.request.match_info["session"])
            )
        except ValueError as e:
            return "invalid_slot", {
                "status": JSendStatus.FAIL,
                "data": {"message": "No such date or session.", "errors": [str(e)]}
            }

        try:
            reconciliation = await self.availability_cache.get(slot)
            size_map = await self.booking_manager.get_size_map()
        except StoreError as error:
            return store_failure(error)

        availability = reconciliation.serialize(size_map)
        availability["open"] = slot.session in open_sessions(slot.date)

        return "availability", {
            "status": JSendStatus.SUCCESS,
            "data": {"availability": availability}
        }
