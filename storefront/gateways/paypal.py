"""
PayPal Gateway

Async client for the PayPal Orders v2 REST API. Handles OAuth2
client-credentials tokens and surfaces PayPal error issues.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

import httpx

from ..core.config import Settings
from ..models.payment import PayPalOrderRecord

logger = logging.getLogger(__name__)

ORDER_ALREADY_CAPTURED = "ORDER_ALREADY_CAPTURED"


class PayPalApiError(Exception):
    """PayPal answered with an error status"""

    def __init__(self, status_code: int, body: Optional[dict] = None):
        self.status_code = status_code
        self.body = body or {}
        super().__init__(f"PayPal API error {status_code}: {self.body.get('name', 'UNKNOWN')}")

    @property
    def issues(self) -> list[str]:
        return [d.get("issue") for d in self.body.get("details", []) if d.get("issue")]

    @property
    def is_already_captured(self) -> bool:
        return ORDER_ALREADY_CAPTURED in self.issues


class PayPalGateway:
    """
    Client for PayPal's Orders API.

    Usage:
        gateway = PayPalGateway.from_settings(settings)
        order = await gateway.create_order(Decimal("20.00"))
        captured = await gateway.capture_order(order.id)
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_base: str = "https://api-m.sandbox.paypal.com",
        currency: str = "USD",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = api_base.rstrip("/")
        self.currency = currency
        self._credentials = (client_id, client_secret)
        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None
        self._http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayPalGateway":
        """Create gateway from application settings"""
        if not settings.paypal_configured:
            raise ValueError("PAYPAL_CLIENT_ID or PAYPAL_CLIENT_SECRET is missing")

        return cls(
            client_id=settings.paypal_client_id,
            client_secret=settings.paypal_client_secret,
            api_base=settings.paypal_api_base,
            currency=settings.currency,
            timeout=settings.http_timeout,
        )

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def _refresh_token(self, force: bool = False) -> None:
        """Fetch a new access token unless the current one is still valid"""
        now = datetime.utcnow()

        if not force and self._access_token and self._token_expires_at:
            if now < self._token_expires_at - timedelta(minutes=5):
                return

        response = await self._http_client.post(
            "/v1/oauth2/token",
            auth=self._credentials,
            data={"grant_type": "client_credentials"},
            headers={"Accept": "application/json"},
        )
        if response.status_code != 200:
            raise PayPalApiError(response.status_code, _json_or_empty(response))

        payload = response.json()
        self._access_token = payload["access_token"]
        self._token_expires_at = now + timedelta(seconds=int(payload.get("expires_in", 3600)))
        logger.info("Refreshed PayPal access token")

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        await self._refresh_token()

        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }
        response = await self._http_client.request(method, path, headers=headers, json=body)

        if response.status_code == 401:
            # Token revoked or expired early, refresh and retry once
            await self._refresh_token(force=True)
            headers["Authorization"] = f"Bearer {self._access_token}"
            response = await self._http_client.request(method, path, headers=headers, json=body)

        if response.status_code >= 400:
            error = PayPalApiError(response.status_code, _json_or_empty(response))
            logger.error(f"PayPal {method} {path} failed: {error} issues={error.issues}")
            raise error

        return response.json()

    async def create_order(self, total: Decimal) -> PayPalOrderRecord:
        """Create an order to be approved by the payer"""
        value = Decimal(total).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        result = await self._request(
            "POST",
            "/v2/checkout/orders",
            body={
                "intent": "CAPTURE",
                "purchase_units": [
                    {"amount": {"currency_code": self.currency, "value": str(value)}},
                ],
            },
        )
        logger.info(f"Order created: {result['id']}")
        return PayPalOrderRecord(id=result["id"], status=result.get("status"))

    async def capture_order(self, order_id: str) -> PayPalOrderRecord:
        """Capture an approved order"""
        result = await self._request("POST", f"/v2/checkout/orders/{order_id}/capture", body={})
        logger.info(f"Order capture for {order_id}: {result.get('status')}")
        return PayPalOrderRecord(id=result.get("id", order_id), status=result.get("status"))

    async def get_order(self, order_id: str) -> PayPalOrderRecord:
        """Look up an order"""
        result = await self._request("GET", f"/v2/checkout/orders/{order_id}")
        return PayPalOrderRecord(id=result.get("id", order_id), status=result.get("status"))


def _json_or_empty(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
