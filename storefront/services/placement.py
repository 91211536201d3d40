"""
Order Placement

Turns a successful payment into a persisted order. The cart is cleared
only after the backend confirmed the order; every failure path leaves it
untouched.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from ..models.checkout import OrderRequest, PaymentDetails, PaymentMethod
from ..models.payment import PaymentIntentStatus, PayPalOrderStatus
from ..models.user import User
from .cart_store import CartStore
from .checkout import CheckoutController
from .errors import OrdersApiError
from .orders_client import OrdersClient

logger = logging.getLogger(__name__)

SUCCESS_STATUS = {
    PaymentMethod.PAYPAL: PayPalOrderStatus.COMPLETED.value,
    PaymentMethod.CREDIT_CARD: PaymentIntentStatus.SUCCEEDED.value,
}


class PlacementStatus(str, Enum):
    SUCCESS = "success"
    ALREADY_CAPTURED = "already_captured"
    IN_PROGRESS = "in_progress"
    INVALID = "invalid"
    FAILED = "failed"
    STALE = "stale"


@dataclass
class PlacementResult:
    """Outcome of place_order"""
    status: PlacementStatus
    message: str
    order_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == PlacementStatus.SUCCESS

    @property
    def retryable(self) -> bool:
        return self.status == PlacementStatus.FAILED


def has_success_indicator(details: PaymentDetails, method: PaymentMethod) -> bool:
    """Payment details carry the provider's success id and status"""
    return (
        bool(details.id)
        and details.provider == method
        and details.status == SUCCESS_STATUS[method]
    )


class OrderPlacement:
    """Persists the order for a checkout session"""

    def __init__(
        self,
        cart: CartStore,
        controller: CheckoutController,
        client: OrdersClient,
        user: User,
    ):
        self.cart = cart
        self.controller = controller
        self.client = client
        self.user = user
        self.submitting = False
        self.result: Optional[PlacementResult] = None
        # payment id -> outcome that must not be repeated
        self._settled: dict[str, PlacementResult] = {}

    def build_order(self, details: PaymentDetails) -> OrderRequest:
        """Order payload with a snapshot of the cart"""
        return OrderRequest(
            user_id=self.user.id,
            shipping_data=self.controller.shipping_data,
            payment_method=self.controller.payment_method.value,
            cart_items=self.cart.snapshot(),
            total_amount=self.cart.get_total(),
            payment_details={**details.raw, "id": details.id, "status": details.status},
        )

    async def place_order(self, details: PaymentDetails) -> PlacementResult:
        """Persist the order for a successful payment"""
        self.result = await self._place(details)
        return self.result

    async def _place(self, details: PaymentDetails) -> PlacementResult:
        method = self.controller.payment_method
        if method is None:
            return PlacementResult(PlacementStatus.INVALID, "Invalid payment method")

        if not has_success_indicator(details, method):
            logger.error(f"Refusing to place order without a successful {method.value} payment")
            return PlacementResult(PlacementStatus.INVALID, "Invalid payment details")

        settled = self._settled.get(details.id)
        if settled is not None:
            logger.warning(f"Payment {details.id} already produced an order")
            return PlacementResult(
                PlacementStatus.ALREADY_CAPTURED,
                "This order has already been placed",
                order_id=settled.order_id,
            )

        if self.submitting:
            return PlacementResult(PlacementStatus.IN_PROGRESS, "Your order is being placed")

        session_id = self.controller.session_id
        order = self.build_order(details)
        payload = order.to_wire()

        self.submitting = True
        try:
            if method == PaymentMethod.PAYPAL:
                response = await self.client.create_paypal_order_record(payload)
            else:
                response = await self.client.create_credit_card_order(payload)
        except OrdersApiError as e:
            if e.is_already_captured:
                result = PlacementResult(
                    PlacementStatus.ALREADY_CAPTURED,
                    "This order has already been placed",
                )
                self._settled[details.id] = result
                return result
            logger.error(f"Error placing order: {e}")
            return PlacementResult(
                PlacementStatus.FAILED,
                "An error occurred while placing the order. Please try again.",
            )
        except httpx.HTTPError as e:
            logger.error(f"Error placing order: {e}")
            return PlacementResult(
                PlacementStatus.FAILED,
                "An error occurred while placing the order. Please try again.",
            )
        finally:
            self.submitting = False

        order_id = response.get("orderId")
        result = PlacementResult(PlacementStatus.SUCCESS, "Order placed successfully", order_id)
        self._settled[details.id] = result

        if not self.controller.is_current(session_id):
            logger.info(f"Order {order_id} placed for stale session {session_id}")
            return PlacementResult(PlacementStatus.STALE, "Checkout session is no longer active", order_id)

        self.cart.clear_cart()
        self.controller.complete(order_id)
        logger.info(f"Order {order_id} placed: {order.total_amount} via {method.value}")
        return result
