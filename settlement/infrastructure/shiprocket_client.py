"""
Shiprocket REST API wrapper.

Covers the four calls the settlement pipeline needs: token exchange,
courier serviceability (rate quote), ad-hoc shipment creation and AWB
tracking. Tokens are cached in memory until shortly before they expire.
"""

import asyncio
import logging
import time
from decimal import Decimal
from typing import Any, Callable

import httpx
from pydantic import BaseModel, Field

from settlement.core.errors import DownstreamProviderError

logger = logging.getLogger(__name__)


class ServiceabilityRequest(BaseModel):
    pickup_pincode: str
    delivery_pincode: str
    weight: float = Field(gt=0)
    length: float = Field(gt=0)
    breadth: float = Field(gt=0)
    height: float = Field(gt=0)


class CourierOption(BaseModel):
    courier_id: int
    courier_name: str
    courier_logo: str = ""
    rate: Decimal
    estimated_delivery_days: str = "3"
    estimated_delivery_date: str = ""
    cod_available: bool = False
    pickup_pincode: str
    delivery_pincode: str


class ShipmentRequest(BaseModel):
    order_id: str
    courier_id: int
    pickup_pincode: str
    delivery_pincode: str
    weight: float = 1.0
    length: float = 10
    breadth: float = 10
    height: float = 5
    customer_name: str
    customer_phone: str
    customer_address: str
    customer_city: str
    customer_state: str
    customer_pincode: str
    customer_country: str = "India"


class ShipmentResult(BaseModel):
    shipment_id: str | None = None
    tracking_number: str | None = None
    awb_number: str | None = None
    courier_name: str | None = None


class TrackingEvent(BaseModel):
    status: str | None = None
    status_code: int | None = None
    status_description: str | None = None
    timestamp: str | None = None
    location: str | None = None


class TrackingStatus(BaseModel):
    tracking_number: str
    status: str | None = None
    status_code: int | None = None
    status_description: str | None = None
    current_status: str | None = None
    current_status_code: int | None = None
    current_status_description: str | None = None
    estimated_delivery_date: str | None = None
    pickup_date: str | None = None
    delivered_date: str | None = None
    tracking_events: list[TrackingEvent] = []


class ShiprocketClient:
    TOKEN_TTL_SECONDS = 3600
    # Refresh a little early so a token never expires mid-request
    TOKEN_REFRESH_MARGIN_SECONDS = 60

    def __init__(
        self,
        base_url: str,
        email: str,
        password: str,
        timeout: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._base_url = base_url
        self._email = email
        self._password = password
        self._timeout = timeout
        self._transport = transport
        self._clock = clock
        self._token: str | None = None
        self._token_expires_at = 0.0
        self._lock = asyncio.Lock()

    async def authenticate(self) -> str:
        async with self._lock:
            if self._token and self._clock() < self._token_expires_at:
                return self._token

            if not self._email or not self._password:
                raise DownstreamProviderError("Shiprocket credentials not configured")

            data = await self._send(
                "POST",
                "/auth/login",
                json={"email": self._email, "password": self._password},
            )
            token = data.get("token")
            if not token:
                raise DownstreamProviderError("No token received from Shiprocket")

            self._token = token
            self._token_expires_at = (
                self._clock()
                + self.TOKEN_TTL_SECONDS
                - self.TOKEN_REFRESH_MARGIN_SECONDS
            )
            logger.info("Obtained new Shiprocket token")
            return token

    def invalidate_token(self) -> None:
        self._token = None
        self._token_expires_at = 0.0

    async def get_courier_options(
        self, request: ServiceabilityRequest
    ) -> list[CourierOption]:
        data = await self._authorized("POST", "/courier/serviceability/", json=request.model_dump())
        companies = (data.get("data") or {}).get("available_courier_companies") or []

        return [
            CourierOption(
                courier_id=courier["courier_id"],
                courier_name=courier["courier_name"],
                courier_logo=courier.get("courier_logo") or "",
                rate=courier["rate"],
                estimated_delivery_days=str(courier.get("estimated_delivery_days") or "3"),
                estimated_delivery_date=courier.get("estimated_delivery_date") or "",
                cod_available=bool(courier.get("cod_available")),
                pickup_pincode=request.pickup_pincode,
                delivery_pincode=request.delivery_pincode,
            )
            for courier in companies
        ]

    async def create_shipment(self, request: ShipmentRequest) -> ShipmentResult:
        data = await self._authorized(
            "POST", "/orders/create/adhoc-shipment", json=request.model_dump()
        )
        awb = data.get("awb_number") or data.get("awb_code")

        return ShipmentResult(
            shipment_id=_as_str(data.get("shipment_id")),
            tracking_number=_as_str(data.get("tracking_number") or awb),
            awb_number=_as_str(awb),
            courier_name=data.get("courier_name"),
        )

    async def track(self, tracking_number: str) -> TrackingStatus:
        data = await self._authorized("GET", f"/courier/track/awb/{tracking_number}")
        return TrackingStatus(
            tracking_number=tracking_number,
            **{
                key: value
                for key, value in data.items()
                if key in TrackingStatus.model_fields
                and key != "tracking_number"
                and value is not None
            },
        )

    async def _authorized(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        token = await self.authenticate()
        try:
            return await self._send(method, path, token=token, **kwargs)
        except _Unauthorized:
            logger.info("Shiprocket token rejected, re-authenticating")
            self.invalidate_token()
            token = await self.authenticate()
            return await self._send(method, path, token=token, **kwargs)

    async def _send(
        self, method: str, path: str, token: str | None = None, **kwargs
    ) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Shiprocket {method} {path} failed: {e}")
            raise DownstreamProviderError(f"Shiprocket request failed: {e}") from e

        if response.status_code == 401 and token:
            raise _Unauthorized(response.text)

        if response.is_error:
            logger.error(
                f"Shiprocket {method} {path} returned {response.status_code}: {response.text}"
            )
            raise DownstreamProviderError(
                f"Shiprocket request failed: {response.reason_phrase} - {response.text}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise DownstreamProviderError("Shiprocket returned a non-JSON response") from e


class _Unauthorized(DownstreamProviderError):
    pass


def _as_str(value: Any) -> str | None:
    return None if value is None else str(value)
