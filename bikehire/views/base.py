"""
Base
----

Every view of the booking API extends :class:`BaseView`, which gives it
the services of the app that is serving the request.
"""

from typing import Optional

from aiohttp.abc import Application
from aiohttp.web import View
from aiohttp_cors import CorsConfig, CorsViewMixin

from bikehire.service.availability import AvailabilityCache
from bikehire.service.manager.booking_manager import BookingManager
from bikehire.store.base import InventoryStore


class ViewConfigurationError(Exception):
    """Raised when a view is registered without a URL."""


class BaseView(View, CorsViewMixin):

    url: str
    name: Optional[str] = None

    @property
    def store(self) -> InventoryStore:
        return self.request.app["store"]

    @property
    def booking_manager(self) -> BookingManager:
        return self.request.app["booking_manager"]

    @property
    def availability_cache(self) -> AvailabilityCache:
        return self.request.app["availability_cache"]

    @classmethod
    def register_route(cls, app: Application, base: str, cors: CorsConfig):
        """
        Adds the view under the base URL, with CORS enabled.

        :raises ViewConfigurationError: If the view has no URL.
        """
        if not getattr(cls, "url", None):
            raise ViewConfigurationError(f"{cls.__name__} has no URL.")

        route = app.router.add_view(base + cls.url, cls, name=cls.name)
        cors.add(route, webview=True)
