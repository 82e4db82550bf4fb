"""
This package contains the server API for checking availability,
and for submitting, following, and cancelling bookings.

API Conventions
---------------

The API conforms as best as possible to the REST standard. In short, the api must:

* Be ordered in terms of resources (nouns such as booking)
* Accept and return JSON with snake_case key naming
* Have idempotent GET, PUT, PATCH, and DELETE operations
* Support filtering (if necessary) using the query string

API Expected Responses
----------------------

The server responds with JSend formatted JSON to all requests.
"""

import aiohttp_cors
from aiohttp.abc import Application

from bikehire import logger
from .availability import AvailabilityCalendarView, SlotAvailabilityView
from .bookings import BookingsView, BookingView
from .coupons import CouponView
from .sizes import SizesView

views = [
    SizesView,
    AvailabilityCalendarView, SlotAvailabilityView,
    BookingsView, BookingView,
    CouponView,
]


def register_views(app: Application, base: str):
    """
    Registers all the API views onto the given router at a specific root url.

    :param app: The app to register the views to.
    :param base: The base URL.
    """
    cors = aiohttp_cors.setup(app, defaults={
        "*": aiohttp_cors.ResourceOptions(
            allow_credentials=True,
            expose_headers="*",
            allow_headers="*",
            allow_methods="*",
        )
    })

    for view in views:
        logger.info("Registered %s at %s", view.__name__, base + view.url)
        view.register_route(app, base, cors)
