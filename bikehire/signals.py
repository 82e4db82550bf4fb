"""
Signals
-------

Defines a number of signals that the aiohttp server uses
to open and close the store around the lifetime of the app.

Each signal must accept an the ``app`` argument.
"""

import asyncio

from aiohttp.abc import Application

from bikehire import logger
from bikehire.config import server_mode
from bikehire.service.rebuildable import Rebuildable


async def open_store(app: Application):
    """Connects to the store, and starts following its change feed if it has one."""
    logger.info("Opening %s", type(app["store"]).__name__)
    await app["store"].open()


async def rebuild_event_states(app: Application):
    """Rebuilds the event-based state from the store."""
    for rebuildable in (x for x in app.values() if isinstance(x, Rebuildable)):
        await rebuildable._rebuild()


async def close_store(app: Application):
    """Closes the store's connections."""
    await app["store"].close()


async def enable_debug(app: Application):
    """Turns on asyncio debugging, which reports slow callbacks and unawaited coroutines."""
    asyncio.get_running_loop().set_debug(True)


def register_signals(app):
    """Registers all the signals at the appropriate hooks."""
    app.on_startup.append(open_store)
    app.on_startup.append(rebuild_event_states)  # the store must be open to rebuild
    if server_mode in ("development", "testing"):
        app.on_startup.append(enable_debug)

    app.on_cleanup.append(close_store)
