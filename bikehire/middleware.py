"""
Middleware
----------
"""

from aiohttp.abc import Request
from aiohttp.web_middlewares import middleware

CLIENT_ID_HEADER = "X-Client-Id"


@middleware
async def client_id_middleware(request: Request, handler):
    """
    Works out who is making the request, for rate limiting and the
    submission cooldown, and stores it on the request as the "client_id".
    Clients name themselves with a header, or are known by their address.
    """
    client_id = request.headers.get(CLIENT_ID_HEADER, "").strip()
    request["client_id"] = client_id[:128] if client_id else (request.remote or "unknown")
    return await handler(request)
