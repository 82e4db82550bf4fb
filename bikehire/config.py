import os
from datetime import timedelta


def _optional_int(value):
    return int(value) if value else None


server_mode = os.getenv("SERVER_MODE", "development")
"""The operational mode of the server."""

api_root = "/api/v1"
"""The base url for the api."""

store_uri = os.getenv("STORE_URI", "memory://")
"""
Where bookings and the fleet live. ``memory://`` keeps everything in process,
``sqlite://`` and ``postgres://`` go through tortoise, and ``http(s)://``
talks to the hosted store over RPC.
"""

store_api_key = os.getenv("STORE_API_KEY")
"""The API key for the hosted store."""

store_realtime_url = os.getenv("STORE_REALTIME_URL")
"""The websocket that pushes change notifications for the hosted store."""

sentry_dsn = os.getenv("SENTRY_DSN")
"""The sentry DSN for exception tracking."""

booking_timezone = os.getenv("BOOKING_TIMEZONE", "Asia/Jerusalem")
"""The timezone the session cut-offs are evaluated in."""

submission_cooldown = timedelta(seconds=float(os.getenv("SUBMISSION_COOLDOWN_SECONDS", "2")))
"""How long a client must wait after a submission attempt before trying again."""

rate_limit_max_attempts = int(os.getenv("RATE_LIMIT_MAX_ATTEMPTS", "5"))
"""The number of booking attempts a client may make inside the rate limit window."""

rate_limit_window = timedelta(seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900")))
"""The sliding window for the booking rate limit."""

size_fallback_distance = int(os.getenv("SIZE_FALLBACK_DISTANCE", "2"))
"""How many sizes away from the ideal size a rider may be assigned."""

size_height_tolerance = float(os.getenv("SIZE_HEIGHT_TOLERANCE", "0.30"))
"""The relative deviation from a fallback size's centre height that is still rideable."""

online_capacity = _optional_int(os.getenv("ONLINE_CAPACITY"))
"""An optional cap on the number of bikes sold online per slot."""
