"""Card payments through Stripe payment intents"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

import stripe
from fastapi.concurrency import run_in_threadpool

from ..core.config import Settings
from ..models.payment import PaymentIntentRecord, PaymentIntentStatus

logger = logging.getLogger(__name__)


class CardGatewayError(Exception):
    """Stripe rejected a request"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def to_minor_units(amount: Decimal) -> int:
    """Convert a decimal amount to cents"""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_record(intent) -> PaymentIntentRecord:
    """Map a Stripe PaymentIntent onto the record exchanged with clients"""
    last_error = intent.get("last_payment_error") or {}
    payment_method = intent.get("payment_method")
    if payment_method is not None and not isinstance(payment_method, str):
        payment_method = payment_method.get("id")
    return PaymentIntentRecord(
        id=intent["id"],
        status=intent.get("status"),
        amount=intent.get("amount"),
        payment_method_id=payment_method,
        error_message=last_error.get("message"),
    )


class CardGateway:
    """Payment intent operations, run in the threadpool"""

    def __init__(self, secret_key: str, currency: str = "usd"):
        self.secret_key = secret_key
        self.currency = currency.lower()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CardGateway":
        """Create gateway from application settings"""
        if not settings.stripe_secret_key:
            raise ValueError("STRIPE_SECRET_KEY is missing")
        return cls(secret_key=settings.stripe_secret_key, currency=settings.currency)

    async def create_intent(self, payment_method_id: str, amount: Decimal) -> PaymentIntentRecord:
        """Stage a payment; Stripe leaves it in requires_confirmation"""
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.create,
                amount=to_minor_units(amount),
                currency=self.currency,
                payment_method=payment_method_id,
                confirmation_method="manual",
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Error creating payment intent: {type(e).__name__}")
            raise CardGatewayError(e.user_message or "Error creating payment intent")
        return to_record(intent)

    async def confirm_intent(self, intent_id: str) -> PaymentIntentRecord:
        """Confirm a staged payment. Declines come back as a failed intent."""
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.confirm,
                intent_id,
                api_key=self.secret_key,
            )
        except stripe.CardError as e:
            logger.warning(f"Card declined for {intent_id}: {e.code}")
            return PaymentIntentRecord(
                id=intent_id,
                status=PaymentIntentStatus.FAILED.value,
                error_message=e.user_message or "Payment failed",
            )
        except stripe.StripeError as e:
            logger.error(f"Error confirming payment intent {intent_id}: {type(e).__name__}")
            raise CardGatewayError(e.user_message or "Error confirming payment intent")
        return to_record(intent)

    async def retrieve_intent(self, intent_id: str) -> PaymentIntentRecord:
        """Look up a payment intent"""
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.retrieve,
                intent_id,
                api_key=self.secret_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Error retrieving payment intent {intent_id}: {type(e).__name__}")
            raise CardGatewayError(e.user_message or "Error retrieving payment intent")
        return to_record(intent)
