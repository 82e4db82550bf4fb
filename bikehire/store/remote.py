"""
A store that talks to the hosted database over its RPC interface. Every call
is a ``POST {base}/rest/v1/rpc/{function}`` with the arguments as a JSON object.

Row level security on the hosted side hides other customers' riders, so the
per-size read is allowed to under-report. The aggregate read is computed by
the database itself and can be trusted.

Transport failures trip a circuit breaker so that a dead upstream fails fast
instead of tying up every request.
"""

import asyncio
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from aiobreaker import CircuitBreaker, CircuitBreakerError
from aiohttp import ClientSession, ClientError, WSMsgType

from bikehire import logger, config
from bikehire.models.util import BikeSize, BikeStatus, BookingStatus, SessionType, DiscountType
from bikehire.store.base import (
    InventoryStore, StoreError, StoreUnavailableError, BikeConflictError, CouponNotFoundError,
    CouponUsedError, BookingMissingError
)
from bikehire.store.records import (
    BikeSnapshot, HeightRange, AggregateUsage, SizeUsage, BikeCommitment, RateLimitDecision,
    CouponQuote, NewBooking, BookingRecord, RiderRecord
)

EXCLUSION_VIOLATION = "23P01"
"""The postgres error raised when a bike is assigned twice in overlapping slots."""

DISCOUNT_TYPES = {
    "percentage": DiscountType.PERCENT,
    "percent": DiscountType.PERCENT,
    "fixed": DiscountType.FIXED,
}


class _UpstreamFailure(Exception):
    """A transport or server side failure, counted by the breaker."""


class RemoteStore(InventoryStore):

    def __init__(self, base_url: str, api_key: str = config.store_api_key,
                 realtime_url: str = config.store_realtime_url,
                 session: ClientSession = None, fail_max: int = 5,
                 reset_timeout: timedelta = timedelta(seconds=30)):
        super().__init__()
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.realtime_url = realtime_url
        self.breaker = CircuitBreaker(fail_max=fail_max, timeout_duration=reset_timeout)
        """After ``fail_max`` failures in a row, calls fail immediately until the timeout passes."""

        self._session = session
        self._owns_session = session is None
        self._listener: Optional[asyncio.Task] = None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def open(self):
        if self._session is None:
            self._session = ClientSession(headers=self.headers)
        if self.realtime_url:
            self._listener = asyncio.ensure_future(self.listen())

    async def close(self):
        if self._listener is not None:
            self._listener.cancel()
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def _post(self, function: str, payload: Dict[str, Any]):
        try:
            async with self._session.post(
                f"{self.base_url}/rest/v1/rpc/{function}", json=payload, headers=self.headers
            ) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                if response.status >= 500:
                    raise _UpstreamFailure(f"{function} failed with {response.status}: {body}")
                return response.status, body
        except ClientError as e:
            raise _UpstreamFailure(f"{function} failed: {e}")
        except asyncio.TimeoutError:
            raise _UpstreamFailure(f"{function} timed out")

    async def rpc(self, function: str, **payload):
        """
        Calls a remote function.

        :raises StoreUnavailableError: If the store cannot be reached or the breaker is open.
        :raises BikeConflictError: If the write would double-book a bike.
        :raises StoreError: If the call was refused.
        """
        if self._session is None:
            raise StoreUnavailableError("The store is not open.")

        try:
            status, body = await self.breaker.call_async(self._post, function, payload)
        except CircuitBreakerError as e:
            raise StoreUnavailableError(f"Store unavailable, calls are suspended: {e}")
        except _UpstreamFailure as e:
            raise StoreUnavailableError(str(e))

        if status >= 400:
            error = body if isinstance(body, dict) else {}
            message = error.get("message") or f"{function} failed with {status}"
            if error.get("code") == EXCLUSION_VIOLATION:
                raise BikeConflictError(message, error.get("bike_ids", ()))
            raise StoreError(message)

        return body

    async def listen(self):
        """Follows the realtime feed, re-emitting every change until cancelled."""
        while True:
            try:
                async with self._session.ws_connect(self.realtime_url, headers=self.headers) as ws:
                    logger.info("Listening for store changes on %s", self.realtime_url)
                    async for message in ws:
                        if message.type == WSMsgType.TEXT:
                            self._handle_change(message.json())
                        elif message.type == WSMsgType.ERROR:
                            break
            except (ClientError, asyncio.TimeoutError) as e:
                logger.warning("Lost the realtime feed: %s", e)
            await asyncio.sleep(5)

    def _handle_change(self, message: Dict):
        payload = message.get("payload") or {}
        table = message.get("table") or payload.get("table")
        if table:
            self.hub.changed(table)

    async def get_bikes(self) -> List[BikeSnapshot]:
        rows = await self.rpc("get_public_bikes")
        return sorted(
            (BikeSnapshot(row["id"], BikeSize(row["size"]), BikeStatus(row["status"])) for row in rows or []),
            key=lambda bike: bike.id
        )

    async def get_size_ranges(self) -> List[HeightRange]:
        rows = await self.rpc("get_height_ranges")
        return [HeightRange(BikeSize(row["size"]), row["min_height"], row["max_height"]) for row in rows or []]

    async def get_aggregate_usage(self, start: date, end: date) -> List[AggregateUsage]:
        rows = await self.rpc("get_public_availability", _start_date=start.isoformat(), _end_date=end.isoformat())
        return [
            AggregateUsage(date.fromisoformat(row["booking_date"]), SessionType(row["session_type"]),
                           row["booked_count"])
            for row in rows or []
        ]

    async def get_size_usage(self, start: date, end: date) -> List[SizeUsage]:
        rows = await self.rpc(
            "get_public_availability_by_size", _start_date=start.isoformat(), _end_date=end.isoformat()
        )
        return [
            SizeUsage(date.fromisoformat(row["booking_date"]), SessionType(row["session_type"]),
                      BikeSize(row["size"]), row["booked_count"])
            for row in rows or []
        ]

    async def get_commitments(self, start: date, end: date) -> List[BikeCommitment]:
        rows = await self.rpc("get_bike_commitments", _start_date=start.isoformat(), _end_date=end.isoformat())
        return [
            BikeCommitment(date.fromisoformat(row["booking_date"]), SessionType(row["session_type"]), row["bike_id"])
            for row in rows or []
        ]

    async def check_rate_limit(self, client_id: str) -> RateLimitDecision:
        rows = await self.rpc("check_booking_rate_limit", _client_id=client_id)
        if not rows:
            return RateLimitDecision(True)
        return RateLimitDecision(rows[0]["allowed"], rows[0].get("retry_after_seconds") or 0)

    async def record_attempt(self, client_id: str, successful: bool):
        await self.rpc("log_booking_attempt", _client_id=client_id, _was_successful=successful)

    async def create_booking(self, booking: NewBooking) -> str:
        booking_id = await self.rpc(
            "create_booking_public",
            _date=booking.date.isoformat(),
            _session=booking.session.value,
            _riders=[
                {
                    "name": rider.name,
                    "height": rider.height,
                    "assignedBike": rider.bike_id,
                    "assignedSize": rider.size.value if rider.size else None,
                }
                for rider in booking.riders
            ],
            _status=booking.status.value,
            _total_price=booking.total_price,
            _phone=booking.phone,
            _email=booking.email,
            _coupon_code=booking.coupon_code,
        )
        self.hub.changed("bookings")
        return str(booking_id)

    @staticmethod
    def _record(row: Dict) -> BookingRecord:
        return BookingRecord(
            id=str(row["id"]),
            date=date.fromisoformat(row["date"]),
            session=SessionType(row["session"]),
            status=BookingStatus(row["status"]),
            riders=[
                RiderRecord(
                    rider["name"], rider["height"], rider.get("assignedBike"),
                    BikeSize(rider["assignedSize"]) if rider.get("assignedSize") else None,
                    rider.get("id"),
                )
                for rider in row.get("riders") or []
            ],
            phone=row.get("phone", ""),
            email=row.get("email", ""),
            total_price=row.get("total_price") or 0,
            coupon_code=row.get("coupon_code"),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        row = await self.rpc("get_booking_public", _booking_id=booking_id)
        return self._record(row) if row else None

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> BookingRecord:
        row = await self.rpc("update_booking_status_public", _booking_id=booking_id, _status=status.value)
        if not row:
            raise BookingMissingError(f"No booking with id {booking_id}.")
        self.hub.changed("bookings")
        return self._record(row)

    async def validate_coupon(self, code: str) -> CouponQuote:
        rows = await self.rpc("validate_coupon_code", _code=code)
        row = rows[0] if isinstance(rows, list) and rows else rows
        if not row or not row.get("valid"):
            error = (row or {}).get("error_message") or "couponNotFound"
            if error == "couponUsed":
                raise CouponUsedError(f"Coupon {code} was already used.")
            raise CouponNotFoundError(f"No coupon {code}.")
        return CouponQuote(code, float(row["discount"]), DISCOUNT_TYPES[row["discount_type"]])

    async def mark_coupon_used(self, code: str, booking_id: str):
        if not await self.rpc("use_coupon_code", _code=code, _booking_id=booking_id):
            raise CouponUsedError(f"Coupon {code} could not be marked as used.")
        self.hub.changed("coupons")

    async def set_bike_status(self, bike_ids: List[int], status: BikeStatus):
        await self.rpc("set_bikes_status", _bike_ids=list(bike_ids), _status=status.value)
        self.hub.changed("bikes")
