"""
Payment Capture Protocol

Two sub-protocols converging on one success callback:

1. PayPal: the buttons create an order through the backend, the payer
   approves it with PayPal, then the backend captures it. Only COMPLETED
   counts as paid.
2. Card: card details are tokenized with Stripe, the backend creates a
   payment intent that must be awaiting confirmation, then confirms it.
   Only succeeded counts as paid.

Each attempt calls on_success at most once. Results arriving after the
checkout session changed are dropped.
"""

import asyncio
import inspect
import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

import httpx
import stripe
from pydantic import BaseModel, SecretStr

from ..models.checkout import PaymentDetails, PaymentMethod
from ..models.payment import (
    PaymentIntentRecord,
    PaymentIntentStatus,
    PayPalApproval,
    PayPalOrderRecord,
    PayPalOrderStatus,
)
from .checkout import CheckoutController
from .errors import (
    OrderAlreadyCapturedError,
    OrdersApiError,
    PaymentError,
    PaymentFailedError,
    UnexpectedPaymentStateError,
)
from .orders_client import OrdersClient

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[PaymentDetails], Union[None, Awaitable[Any]]]
ErrorCallback = Callable[[PaymentError], None]


class PaymentProvider(Protocol):
    """Backend operations the payment flows depend on"""

    async def create_order(self, total: Decimal) -> str: ...

    async def capture(self, order_id: str) -> PayPalOrderRecord: ...

    async def create_intent(self, payment_method_token: str, amount: Decimal) -> PaymentIntentRecord: ...

    async def confirm_intent(self, intent_id: str) -> PaymentIntentRecord: ...


class BackendPaymentProvider:
    """PaymentProvider backed by the orders API"""

    def __init__(self, client: OrdersClient):
        self.client = client

    async def create_order(self, total: Decimal) -> str:
        return await self.client.create_paypal_order(total)

    async def capture(self, order_id: str) -> PayPalOrderRecord:
        data = await self.client.capture_paypal_order(order_id)
        return PayPalOrderRecord(id=data.get("orderID") or order_id, status=data.get("status"))

    async def create_intent(self, payment_method_token: str, amount: Decimal) -> PaymentIntentRecord:
        return await self.client.create_payment_intent(payment_method_token, amount)

    async def confirm_intent(self, intent_id: str) -> PaymentIntentRecord:
        return await self.client.confirm_payment_intent(intent_id)


# ==================== Card tokenization ====================


class CardDetails(BaseModel):
    """Raw card data. Secret fields never show up in logs or reprs."""
    number: SecretStr
    exp_month: int
    exp_year: int
    cvc: SecretStr


class CardTokenizer(Protocol):
    """Turns card details into an opaque payment method token"""

    async def tokenize(self, card: CardDetails) -> str: ...


class StripeCardTokenizer:
    """Tokenizes cards with Stripe using the publishable key"""

    def __init__(self, publishable_key: str):
        self.publishable_key = publishable_key

    async def tokenize(self, card: CardDetails) -> str:
        try:
            payment_method = await asyncio.to_thread(
                stripe.PaymentMethod.create,
                type="card",
                card={
                    "number": card.number.get_secret_value(),
                    "exp_month": card.exp_month,
                    "exp_year": card.exp_year,
                    "cvc": card.cvc.get_secret_value(),
                },
                api_key=self.publishable_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Error creating Payment Method: {type(e).__name__}")
            raise PaymentFailedError(e.user_message or "Card could not be processed")
        return payment_method.id


# ==================== PayPal SDK ====================


class PayPalSdk:
    """PayPal buttons script, built once per process lifetime"""

    _script_url: Optional[str] = None

    @classmethod
    def load(cls, client_id: str, currency: str, sdk_url: str) -> str:
        if cls._script_url is None:
            cls._script_url = str(
                httpx.URL(sdk_url, params={"client-id": client_id, "currency": currency})
            )
            logger.info("PayPal SDK loaded")
        return cls._script_url

    @classmethod
    def is_loaded(cls) -> bool:
        return cls._script_url is not None

    @classmethod
    def unload(cls) -> None:
        cls._script_url = None


# ==================== Attempts ====================


class PaymentAttempt:
    """
    State shared by both sub-protocols.

    submitting blocks re-entry while a network call is in flight;
    finished blocks any further call once the attempt succeeded or hit a
    non-retryable error. reset() starts a new attempt.
    """

    method: PaymentMethod

    def __init__(
        self,
        provider: PaymentProvider,
        controller: CheckoutController,
        on_success: SuccessCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self.provider = provider
        self.controller = controller
        self.on_success = on_success
        self.on_error = on_error
        self.submitting = False
        self.finished = False
        self.error: Optional[PaymentError] = None
        self._session_id: Optional[str] = None

    @property
    def error_message(self) -> Optional[str]:
        """Inline message for the review step"""
        return self.error.message if self.error else None

    def reset(self) -> None:
        """Restart the payment step"""
        if self.submitting:
            logger.warning("Cannot reset a payment attempt while it is submitting")
            return
        self.finished = False
        self.error = None
        self._session_id = None

    def _begin(self) -> Optional[str]:
        if self.submitting or self.finished:
            logger.warning(f"Ignoring duplicate {self.method.value} submission")
            return None
        self.submitting = True
        self.error = None
        if self._session_id is None:
            self._session_id = self.controller.session_id
        return self._session_id

    def _is_stale(self, session_id: str) -> bool:
        if not self.controller.is_current(session_id):
            logger.info(f"Dropping {self.method.value} result for stale session {session_id}")
            return True
        return False

    def _fail(self, error: PaymentError) -> None:
        logger.warning(f"{self.method.value} payment failed: {error.message}")
        self.error = error
        if not error.retryable:
            self.finished = True
        if self.on_error is not None:
            self.on_error(error)

    async def _succeed(self, details: PaymentDetails) -> None:
        self.finished = True
        logger.info(f"{self.method.value} payment {details.id} succeeded")
        result = self.on_success(details)
        if inspect.isawaitable(result):
            await result


def _api_failure(e: Exception, default: str) -> PaymentError:
    if isinstance(e, OrdersApiError):
        if e.is_already_captured:
            return OrderAlreadyCapturedError()
        return PaymentFailedError(e.error_message or default)
    return PaymentFailedError(default)


class PayPalCheckout(PaymentAttempt):
    """PayPal buttons flow: create order, payer approval, capture"""

    method = PaymentMethod.PAYPAL

    def __init__(
        self,
        provider: PaymentProvider,
        controller: CheckoutController,
        on_success: SuccessCallback,
        on_error: Optional[ErrorCallback] = None,
        client_id: str = "",
        currency: str = "USD",
        sdk_url: str = "https://www.paypal.com/sdk/js",
    ):
        super().__init__(provider, controller, on_success, on_error)
        self.client_id = client_id
        self.currency = currency
        self.sdk_url = sdk_url
        self.rendered = False

    def render(self, amount: Decimal) -> Optional[str]:
        """
        Mount the buttons once. Returns the SDK script URL on the first
        render with a positive amount, None otherwise.
        """
        if self.rendered or amount <= 0:
            return None
        script_url = PayPalSdk.load(self.client_id, self.currency, self.sdk_url)
        self.rendered = True
        self._session_id = self.controller.session_id
        return script_url

    async def create_order(self, total: Decimal) -> str:
        """
        createOrder callback: returns the PayPal order id for the buttons.

        Raises the attempt's final error, or PaymentFailedError, once the
        attempt is finished or its checkout session is gone.
        """
        if self.finished:
            logger.warning("Refusing to create a PayPal order for a finished attempt")
            raise self.error or PaymentFailedError("Payment already completed")
        if self._session_id is not None and self._is_stale(self._session_id):
            raise PaymentFailedError("Checkout session is no longer active")

        try:
            order_id = await self.provider.create_order(total.quantize(Decimal("0.01")))
        except (OrdersApiError, httpx.HTTPError) as e:
            error = _api_failure(e, "An error occurred while creating the order")
            self._fail(error)
            raise error
        logger.info(f"PayPal order {order_id} created")
        return order_id

    async def on_approve(self, approval: Union[PayPalApproval, dict]) -> Optional[PaymentDetails]:
        """onApprove callback: capture the approved order"""
        if not isinstance(approval, PayPalApproval):
            approval = PayPalApproval.model_validate(approval)

        session_id = self._begin()
        if session_id is None:
            return None

        error: Optional[PaymentError] = None
        record: Optional[PayPalOrderRecord] = None
        try:
            record = await self.provider.capture(approval.order_id)
        except (OrdersApiError, httpx.HTTPError) as e:
            error = _api_failure(e, "An error occurred while capturing the order")
        finally:
            self.submitting = False

        if self._is_stale(session_id):
            return None

        if error is None and record.status != PayPalOrderStatus.COMPLETED:
            error = PaymentFailedError(f"PayPal order was not completed (status {record.status})")

        if error is not None:
            self._fail(error)
            return None

        details = PaymentDetails(
            id=record.id,
            status=record.status,
            provider=PaymentMethod.PAYPAL,
            raw={"orderID": record.id, "payerID": approval.payer_id, "status": record.status},
        )
        await self._succeed(details)
        return details

    def on_cancel(self) -> None:
        """Payer closed the PayPal window; the attempt stays open"""
        logger.info("PayPal payment cancelled by payer")


class CardCheckout(PaymentAttempt):
    """Card flow: tokenize, create intent, confirm intent"""

    method = PaymentMethod.CREDIT_CARD

    def __init__(
        self,
        provider: PaymentProvider,
        tokenizer: CardTokenizer,
        controller: CheckoutController,
        on_success: SuccessCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        super().__init__(provider, controller, on_success, on_error)
        self.tokenizer = tokenizer

    async def submit(self, card: CardDetails, total: Decimal) -> Optional[PaymentDetails]:
        """Pay button handler"""
        session_id = self._begin()
        if session_id is None:
            return None

        error: Optional[PaymentError] = None
        intent: Optional[PaymentIntentRecord] = None
        try:
            intent = await self._pay(card, total)
        except PaymentError as e:
            error = e
        finally:
            self.submitting = False

        if self._is_stale(session_id):
            return None

        if error is not None:
            self._fail(error)
            return None

        details = PaymentDetails(
            id=intent.id,
            status=intent.status,
            provider=PaymentMethod.CREDIT_CARD,
            raw=intent.model_dump(mode="json", by_alias=True),
        )
        await self._succeed(details)
        return details

    async def _pay(self, card: CardDetails, total: Decimal) -> PaymentIntentRecord:
        token = await self.tokenizer.tokenize(card)

        try:
            intent = await self.provider.create_intent(token, total)
        except (OrdersApiError, httpx.HTTPError) as e:
            raise _api_failure(e, "Error creating payment intent")

        if intent is None or intent.status != PaymentIntentStatus.REQUIRES_CONFIRMATION:
            status = intent.status if intent else None
            logger.error(f"Unexpected Payment Intent status: {status}")
            raise UnexpectedPaymentStateError("Unexpected Payment Intent status")

        try:
            confirmed = await self.provider.confirm_intent(intent.id)
        except (OrdersApiError, httpx.HTTPError) as e:
            raise _api_failure(e, "Error confirming payment intent")

        if confirmed.status != PaymentIntentStatus.SUCCEEDED:
            raise PaymentFailedError(confirmed.error_message or "Payment failed")

        return confirmed
