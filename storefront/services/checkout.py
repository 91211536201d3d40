"""
Checkout Step Controller

Linear sequencer for Shipping -> Payment Method -> Review/Pay. Transitions
are driven only by user actions; step 3 is left through payment success
(complete) or by abandoning the session.
"""

import logging
from typing import Any, Optional, Union

from ..core.session import CheckoutSession, CheckoutStep, SessionStatus
from ..models.checkout import PaymentMethod, ShippingAddress
from .cart_store import CartStore
from .errors import CartValidationError, InvalidStepError

logger = logging.getLogger(__name__)


class CheckoutController:
    """Drives one checkout session at a time"""

    def __init__(self, cart: CartStore):
        self.cart = cart
        self.session = CheckoutSession()

    @property
    def step(self) -> CheckoutStep:
        return self.session.step

    @property
    def shipping_data(self) -> Optional[ShippingAddress]:
        return self.session.shipping_data

    @property
    def payment_method(self) -> Optional[PaymentMethod]:
        return self.session.payment_method

    @property
    def session_id(self) -> str:
        return self.session.session_id

    def is_current(self, session_id: str) -> bool:
        """Whether results tagged with session_id may still change state"""
        return self.session.session_id == session_id and self.session.is_active

    async def begin_checkout(self) -> CheckoutSession:
        """
        Start a fresh session once the cart passes the stock gate.

        Raises:
            CartValidationError: cart is empty or quantities exceed stock
        """
        if not self.cart.items:
            raise CartValidationError("Cart is empty")

        if await self.cart.check_quantities():
            raise CartValidationError("Some items exceed the available quantity")

        return self.restart()

    def restart(self) -> CheckoutSession:
        """Discard the current session and start over at step 1"""
        if self.session.is_active:
            self.session.finish(SessionStatus.ABANDONED)
        self.session = CheckoutSession()
        logger.info(f"Checkout session {self.session.session_id} started")
        return self.session

    def next_step(self, data: Union[ShippingAddress, PaymentMethod, str, dict, Any]) -> CheckoutStep:
        """Store the data of the current step and advance"""
        if not self.session.is_active:
            raise InvalidStepError(f"Checkout session is {self.session.status.value}")

        if self.step == CheckoutStep.SHIPPING:
            if not isinstance(data, ShippingAddress):
                data = ShippingAddress.model_validate(data)
            self.session.shipping_data = data
        elif self.step == CheckoutStep.PAYMENT_METHOD:
            try:
                self.session.payment_method = PaymentMethod(data)
            except ValueError:
                raise InvalidStepError(f"Unknown payment method: {data!r}")
        else:
            raise InvalidStepError("Review step is left through payment, not next_step")

        self.session.move_to(CheckoutStep(self.step + 1))
        return self.step

    def prev_step(self) -> CheckoutStep:
        """Go back one step. Stored data is kept."""
        if self.step == CheckoutStep.SHIPPING:
            logger.warning("prev_step called on the first checkout step")
            return self.step

        self.session.move_to(CheckoutStep(self.step - 1))
        return self.step

    def complete(self, order_id: Optional[str] = None) -> None:
        """Terminal success"""
        self.session.finish(SessionStatus.COMPLETED, order_id=order_id)
        logger.info(f"Checkout session {self.session.session_id} completed, order={order_id}")

    def abandon(self) -> None:
        """User left the checkout; in-flight results are ignored from now on"""
        if self.session.is_active:
            self.session.finish(SessionStatus.ABANDONED)
            logger.info(f"Checkout session {self.session.session_id} abandoned")
