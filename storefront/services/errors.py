"""Checkout client exceptions"""

from typing import Any, Optional


ALREADY_CAPTURED_MESSAGE = "Order already captured"


class CheckoutError(Exception):
    """Base exception for checkout errors"""
    pass


class CartValidationError(CheckoutError):
    """Cart cannot enter checkout (empty or stock exceeded)"""
    pass


class InvalidStepError(CheckoutError):
    """Illegal checkout step transition"""
    pass


class PaymentError(CheckoutError):
    """Base exception for payment failures"""

    retryable = True

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PaymentFailedError(PaymentError):
    """Provider declined or could not be reached"""
    pass


class UnexpectedPaymentStateError(PaymentError):
    """Provider returned a state the flow cannot continue from"""

    retryable = False


class OrderAlreadyCapturedError(PaymentError):
    """Payment was already captured; repeating it would double charge"""

    retryable = False

    def __init__(self, message: str = ALREADY_CAPTURED_MESSAGE):
        super().__init__(message)


class OrdersApiError(CheckoutError):
    """Orders backend answered with an error status"""

    def __init__(self, status_code: int, body: Optional[Any] = None):
        self.status_code = status_code
        self.body = body if body is not None else {}
        super().__init__(f"Orders API error {status_code}: {self.error_message}")

    @property
    def error_message(self) -> Optional[str]:
        if not isinstance(self.body, dict):
            return None
        message = self.body.get("error") or self.body.get("message") or self.body.get("detail")
        return message if isinstance(message, str) else None

    @property
    def is_already_captured(self) -> bool:
        return self.error_message == ALREADY_CAPTURED_MESSAGE


class UnsettledPaymentError(CheckoutError):
    """A captured payment still has no order; placing it must be retried first"""

    def __init__(self, payment_id: str):
        super().__init__(f"Payment {payment_id} is captured but its order was not placed")
        self.payment_id = payment_id
