import logging
from typing import Any

import httpx

from settlement.core.errors import DownstreamProviderError, SettlementError

logger = logging.getLogger(__name__)


class RazorpayClient:
    """Thin wrapper over the Razorpay REST API (orders and payments)."""

    def __init__(
        self,
        base_url: str,
        key_id: str,
        key_secret: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url
        self._key_id = key_id
        self._key_secret = key_secret
        self._timeout = timeout
        self._transport = transport

    @property
    def key_id(self) -> str:
        return self._key_id

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/orders",
            json={
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )

    async def fetch_payment(self, payment_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/payments/{payment_id}")

    async def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        if not self._key_id or not self._key_secret:
            logger.error("Razorpay credentials are not configured")
            raise SettlementError("Server configuration error")

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                auth=(self._key_id, self._key_secret),
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Razorpay {method} {path} failed: {e}")
            raise DownstreamProviderError(f"Razorpay request failed: {e}") from e

        if response.is_error:
            description = self._error_description(response)
            logger.error(
                f"Razorpay {method} {path} returned {response.status_code}: {description}"
            )
            raise DownstreamProviderError(description)

        try:
            return response.json()
        except ValueError as e:
            raise DownstreamProviderError("Razorpay returned a non-JSON response") from e

    @staticmethod
    def _error_description(response: httpx.Response) -> str:
        try:
            error = response.json().get("error") or {}
            return error.get("description") or f"Razorpay error {response.status_code}"
        except (ValueError, AttributeError):
            return f"Razorpay error {response.status_code}"
