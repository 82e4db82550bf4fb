"""
App
-----
"""

import sentry_sdk
from aiohttp import web
from sentry_sdk.integrations.aiohttp import AioHttpIntegration

from bikehire import logger
from bikehire.config import api_root, server_mode, sentry_dsn, store_uri
from bikehire.middleware import client_id_middleware
from bikehire.service.availability import AvailabilityCache
from bikehire.service.manager.booking_manager import BookingManager
from bikehire.signals import register_signals
from bikehire.store.base import InventoryStore
from bikehire.store.factory import create_store
from bikehire.version import __version__, name
from bikehire.views import register_views


def build_app(store: InventoryStore = None, **manager_options):
    """
    Sets up the app.

    :param store: The store to use, by default picked from the ``STORE_URI``.
    :param manager_options: Passed on to the :class:`~bikehire.service.manager.booking_manager.BookingManager`.
    """
    app = web.Application(middlewares=[client_id_middleware])

    app["store"] = store if store is not None else create_store(store_uri)
    app["availability_cache"] = AvailabilityCache(app["store"])
    app["booking_manager"] = BookingManager(app["store"], app["availability_cache"], **manager_options)

    register_signals(app)
    register_views(app, api_root)

    # set up sentry exception tracking
    if server_mode != "development" and sentry_dsn:
        logger.info("Starting Sentry Logging")
        sentry_sdk.init(
            dsn=sentry_dsn,
            environment=server_mode,
            release=f"{name}@{__version__}",
            integrations=[AioHttpIntegration()],
        )

    return app
