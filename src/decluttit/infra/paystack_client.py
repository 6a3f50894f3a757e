"""Paystack gateway client.

Thin async wrapper over the Paystack REST API using httpx. Every call is
bounded by ``payment_timeout_seconds``; transport failures, non-2xx
responses and ``status: false`` payloads all surface as
ExternalServiceError. Nothing here retries.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import httpx

from decluttit.app.config import get_settings
from decluttit.domain.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def to_kobo(amount: Decimal) -> int:
    """Convert a naira amount to integer kobo (minor units)."""
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaystackClient:
    """Initialize and verify Paystack charges."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self._secret_key = secret_key if secret_key is not None else settings.paystack_secret_key
        self._base_url = (base_url or settings.paystack_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.payment_timeout_seconds
        self._transport = transport

    async def initialize(
        self,
        email: str,
        amount_kobo: int,
        reference: str,
        callback_url: str,
        metadata: Optional[dict] = None,
    ) -> dict:
        """Start a charge. Returns the ``data`` object (authorization_url, reference)."""
        payload = {
            "email": email,
            "amount": amount_kobo,
            "reference": reference,
            "callback_url": callback_url,
            "metadata": metadata or {},
        }
        return await self._request("POST", "/transaction/initialize", json=payload)

    async def verify(self, reference: str) -> dict:
        """Look up a charge by reference. Returns the ``data`` object."""
        return await self._request("GET", f"/transaction/verify/{reference}")

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        if not self._secret_key:
            raise ExternalServiceError("Paystack is not configured")

        headers = {
            "Authorization": f"Bearer {self._secret_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.request(method, path, headers=headers, **kwargs)
                resp.raise_for_status()
                body = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Paystack %s %s HTTP error: %s", method, path, exc)
            raise ExternalServiceError(_gateway_message(exc.response)) from exc
        except httpx.RequestError as exc:
            logger.warning("Paystack %s %s request failed: %s", method, path, exc)
            raise ExternalServiceError("Payment gateway unreachable") from exc
        except ValueError as exc:
            logger.warning("Paystack %s %s returned invalid JSON", method, path)
            raise ExternalServiceError("Payment gateway returned an invalid response") from exc

        if not isinstance(body, dict) or not body.get("status") or "data" not in body:
            message = body.get("message") if isinstance(body, dict) else None
            raise ExternalServiceError(message or "Payment gateway rejected the request")
        return body["data"]


def _gateway_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    message = body.get("message") if isinstance(body, dict) else None
    return message or f"Payment gateway error ({response.status_code})"
