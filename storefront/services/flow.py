"""
Checkout flow wiring

Connects the cart, the step controller, both payment flows and order
placement for one signed-in user.
"""

import logging
from typing import Optional

from ..core.config import Settings
from ..models.checkout import PaymentDetails, PaymentMethod
from ..models.user import User
from .analytics import AnalyticsTracker
from .cart_store import CartStore
from .checkout import CheckoutController
from .errors import PaymentError, UnsettledPaymentError
from .orders_client import OrdersClient
from .payments import (
    BackendPaymentProvider,
    CardCheckout,
    CardTokenizer,
    PaymentProvider,
    PayPalCheckout,
    StripeCardTokenizer,
)
from .placement import OrderPlacement, PlacementResult, PlacementStatus
from .storage import FileStorage

logger = logging.getLogger(__name__)


class CheckoutFlow:
    """Checkout page: three steps, two payment flows, one order"""

    def __init__(
        self,
        cart: CartStore,
        client: OrdersClient,
        provider: PaymentProvider,
        user: User,
        settings: Settings,
        tokenizer: Optional[CardTokenizer] = None,
    ):
        self.cart = cart
        # Set when the flow owns its client (from_settings)
        self.client: Optional[OrdersClient] = None
        self.controller = CheckoutController(cart)
        self.placement = OrderPlacement(cart, self.controller, client, user)
        self.error_message: Optional[str] = None
        # Captured payment whose order is not placed yet
        self.unsettled_payment: Optional[PaymentDetails] = None

        self.paypal = PayPalCheckout(
            provider,
            self.controller,
            on_success=self.handle_payment_success,
            on_error=self._show_error,
            client_id=settings.paypal_client_id or "",
            currency=settings.currency,
            sdk_url=settings.paypal_sdk_url,
        )
        self.card = CardCheckout(
            provider,
            tokenizer or StripeCardTokenizer(settings.stripe_publishable_key or ""),
            self.controller,
            on_success=self.handle_payment_success,
            on_error=self._show_error,
        )

    @classmethod
    def from_settings(
        cls,
        user: User,
        token: str,
        settings: Settings,
        transport=None,
    ) -> "CheckoutFlow":
        """
        Wire a flow against the orders backend.

        The cart lives in settings.cart_storage_dir and cart events go to
        the backend's events endpoint. Call close() when done.
        """
        client = OrdersClient(
            settings.server_url,
            token=token,
            timeout=settings.http_timeout,
            transport=transport,
        )
        cart = CartStore(
            FileStorage(settings.cart_storage_dir),
            tracker=AnalyticsTracker(client),
        )
        flow = cls(cart, client, BackendPaymentProvider(client), user, settings)
        flow.client = client
        return flow

    async def close(self) -> None:
        """Send pending cart events and close the backend client"""
        if self.client is None:
            return
        tracker = self.cart.tracker
        if tracker is not None:
            await tracker.flush()
        await self.client.close()

    @property
    def active_payment(self):
        """Payment flow selected on step 2"""
        if self.controller.payment_method == PaymentMethod.PAYPAL:
            return self.paypal
        if self.controller.payment_method == PaymentMethod.CREDIT_CARD:
            return self.card
        return None

    async def start(self) -> None:
        """
        Enter checkout from the cart page.

        Raises:
            UnsettledPaymentError: a captured payment still waits for its
                order; call retry_placement() instead of paying again
        """
        if self.unsettled_payment is not None:
            raise UnsettledPaymentError(self.unsettled_payment.id)

        await self.controller.begin_checkout()
        self.paypal.reset()
        self.card.reset()
        self.error_message = None

    def _show_error(self, error: PaymentError) -> None:
        self.error_message = error.message

    async def handle_payment_success(self, details: PaymentDetails) -> PlacementResult:
        """Single success contract for both payment flows"""
        self.unsettled_payment = details
        return await self._place(details)

    async def retry_placement(self) -> Optional[PlacementResult]:
        """Place the order again for the captured payment, without charging"""
        if self.unsettled_payment is None:
            logger.warning("No captured payment waiting for an order")
            return None
        return await self._place(self.unsettled_payment)

    async def _place(self, details: PaymentDetails) -> PlacementResult:
        result = await self.placement.place_order(details)
        if result.status not in (PlacementStatus.FAILED, PlacementStatus.IN_PROGRESS):
            self.unsettled_payment = None
        if not result.success:
            self.error_message = result.message
        else:
            self.error_message = None
        return result
