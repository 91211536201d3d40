"""
Orders API Client

HTTP client for the storefront orders backend. One coroutine per endpoint;
error statuses raise OrdersApiError carrying the decoded response body.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx

from ..models.cart import Product
from ..models.payment import PaymentIntentRecord
from .errors import OrdersApiError

logger = logging.getLogger(__name__)


class OrdersClient:
    """Client for the orders, products and events endpoints"""

    def __init__(
        self,
        server_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize orders client.

        Args:
            server_url: Base URL of the orders backend
            token: Bearer token of the signed-in user
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests, ASGI apps)
        """
        self.base_url = server_url.rstrip("/")
        self.token = token
        self._http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def __aenter__(self) -> "OrdersClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Any:
        """Make an HTTP request and decode the JSON response"""
        response = await self._http_client.request(
            method=method,
            url=path,
            headers=self._headers(),
            json=body,
            params=params,
        )

        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"error": response.text}
            logger.error(f"Request failed: {method} {path} {response.status_code} - {payload}")
            raise OrdersApiError(response.status_code, payload)

        return response.json()

    # ==================== Card payment ====================

    async def create_payment_intent(
        self,
        payment_method_id: str,
        amount: Decimal,
    ) -> PaymentIntentRecord:
        """Stage a card payment for confirmation"""
        data = await self._request(
            "POST",
            "/orders/create-payment-intent",
            body={"paymentMethodId": payment_method_id, "amount": str(amount)},
        )
        return PaymentIntentRecord.model_validate(data["paymentIntent"])

    async def confirm_payment_intent(self, payment_intent_id: str) -> PaymentIntentRecord:
        """Confirm a staged card payment"""
        data = await self._request(
            "POST",
            "/orders/confirm-payment-intent",
            body={"paymentIntentId": payment_intent_id},
        )
        return PaymentIntentRecord.model_validate(data["paymentIntent"])

    # ==================== PayPal ====================

    async def create_paypal_order(self, total: Decimal) -> str:
        """Create a PayPal order for the total. Returns the PayPal order id."""
        data = await self._request(
            "POST",
            "/orders/",
            body={"action": "create", "total": str(total)},
        )
        return data["id"]

    async def capture_paypal_order(self, order_id: str) -> dict:
        """Capture an approved PayPal order"""
        return await self._request(
            "POST",
            "/orders/",
            body={"action": "capture", "orderID": order_id},
        )

    # ==================== Orders ====================

    async def create_paypal_order_record(self, order_data: dict) -> dict:
        """Persist an order paid with PayPal"""
        return await self._request("POST", "/orders/paypal-order", body=order_data)

    async def create_credit_card_order(self, order_data: dict) -> dict:
        """Persist an order paid by card"""
        return await self._request("POST", "/orders/credit-card-order", body=order_data)

    async def get_order_history(self, user_id: str, page: int = 1, limit: int = 10) -> dict:
        """Paginated orders of a user"""
        return await self._request(
            "GET",
            f"/orders/history/{user_id}",
            params={"page": page, "limit": limit},
        )

    # ==================== Catalog & events ====================

    async def get_product(self, product_id: str) -> Product:
        """Get product details, including available stock"""
        data = await self._request("GET", f"/products/{product_id}")
        return Product.model_validate(data)

    async def log_event(
        self,
        event_type: str,
        product_id: Optional[str],
        user_id: str,
        metadata: Optional[dict] = None,
    ) -> dict:
        """Record an analytics event"""
        return await self._request(
            "POST",
            "/events",
            body={
                "userId": user_id,
                "eventType": event_type,
                "productId": product_id,
                "metadata": metadata or {},
            },
        )
