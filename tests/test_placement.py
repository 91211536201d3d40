import httpx
import pytest

from storefront.core.session import SessionStatus
from storefront.models.checkout import PaymentDetails, PaymentMethod
from storefront.services.errors import OrdersApiError
from storefront.services.placement import OrderPlacement, PlacementStatus


def paypal_details(order_id: str = "PAYPAL-ORDER-1", status: str = "COMPLETED") -> PaymentDetails:
    return PaymentDetails(
        id=order_id,
        status=status,
        provider=PaymentMethod.PAYPAL,
        raw={"orderID": order_id, "payerID": "PAYER-1", "status": status},
    )


def card_details(intent_id: str = "pi_1", status: str = "succeeded") -> PaymentDetails:
    return PaymentDetails(id=intent_id, status=status, provider=PaymentMethod.CREDIT_CARD)


@pytest.fixture
def placement(cart, review_controller, orders_client, user):
    return OrderPlacement(cart, review_controller, orders_client, user)


async def test_successful_order_clears_cart(placement, cart, review_controller, orders_client):
    result = await placement.place_order(paypal_details())

    assert result.success
    assert result.order_id == "ORD-TEST"
    assert cart.items == ()
    assert review_controller.session.status == SessionStatus.COMPLETED
    assert review_controller.session.order_id == "ORD-TEST"
    assert len(orders_client.paypal_orders) == 1


async def test_order_payload(placement, orders_client, shipping):
    await placement.place_order(paypal_details())

    payload = orders_client.paypal_orders[0]
    assert payload["userId"] == "user-1"
    assert payload["paymentMethod"] == "paypal"
    assert payload["totalAmount"] == "20.00"
    assert payload["shippingData"] == shipping.to_wire()
    assert payload["cartItems"][0]["productId"] == "prod-mug"
    assert payload["cartItems"][0]["quantity"] == 2
    assert payload["paymentDetails"]["orderID"] == "PAYPAL-ORDER-1"
    assert payload["paymentDetails"]["status"] == "COMPLETED"


async def test_payload_is_a_snapshot(placement, cart, orders_client, mug, user):
    def add_more():
        cart.add_to_cart(mug, user)

    orders_client.before_return = add_more
    orders_client.error = OrdersApiError(500, {"error": "boom"})

    await placement.place_order(paypal_details())

    assert orders_client.paypal_orders[0]["cartItems"][0]["quantity"] == 2
    assert cart.items[0].quantity == 3


@pytest.mark.parametrize(
    "details",
    [
        paypal_details(status="APPROVED"),
        paypal_details(order_id=None),
        card_details(),
        PaymentDetails(provider=PaymentMethod.PAYPAL),
    ],
)
async def test_missing_success_indicator_sends_nothing(placement, cart, orders_client, details):
    result = await placement.place_order(details)

    assert result.status == PlacementStatus.INVALID
    assert result.message == "Invalid payment details"
    assert orders_client.paypal_orders == []
    assert orders_client.card_orders == []
    assert len(cart.items) == 1


async def test_second_success_is_not_sent_again(placement, orders_client):
    first = await placement.place_order(paypal_details())
    second = await placement.place_order(paypal_details())

    assert first.success
    assert second.status == PlacementStatus.ALREADY_CAPTURED
    assert second.order_id == "ORD-TEST"
    assert len(orders_client.paypal_orders) == 1


async def test_backend_already_captured_keeps_cart(placement, cart, review_controller, orders_client):
    orders_client.error = OrdersApiError(400, {"error": "Order already captured"})

    result = await placement.place_order(paypal_details())
    again = await placement.place_order(paypal_details())

    assert result.status == PlacementStatus.ALREADY_CAPTURED
    assert result.message == "This order has already been placed"
    assert not result.retryable
    assert again.status == PlacementStatus.ALREADY_CAPTURED
    assert len(orders_client.paypal_orders) == 1
    assert len(cart.items) == 1
    assert review_controller.session.is_active


@pytest.mark.parametrize(
    "error",
    [
        OrdersApiError(500, {"error": "An error occurred while capturing the order"}),
        OrdersApiError(400, {"status": "error"}),
        httpx.ConnectError("connection refused"),
    ],
)
async def test_failure_is_retryable_and_keeps_cart(placement, cart, review_controller, orders_client, error):
    orders_client.error = error

    result = await placement.place_order(paypal_details())

    assert result.status == PlacementStatus.FAILED
    assert result.retryable
    assert result.message == "An error occurred while placing the order. Please try again."
    assert len(cart.items) == 1
    assert review_controller.session.is_active
    assert placement.submitting is False

    orders_client.error = None
    retried = await placement.place_order(paypal_details())

    assert retried.success
    assert len(orders_client.paypal_orders) == 2


async def test_order_for_stale_session_keeps_cart(placement, cart, review_controller, orders_client):
    orders_client.before_return = review_controller.abandon

    result = await placement.place_order(paypal_details())

    assert result.status == PlacementStatus.STALE
    assert result.order_id == "ORD-TEST"
    assert len(cart.items) == 1
    assert review_controller.session.status == SessionStatus.ABANDONED


async def test_card_order_goes_to_card_endpoint(cart, review_controller, orders_client, user):
    review_controller.prev_step()
    review_controller.next_step(PaymentMethod.CREDIT_CARD)
    placement = OrderPlacement(cart, review_controller, orders_client, user)

    result = await placement.place_order(card_details())

    assert result.success
    assert orders_client.paypal_orders == []
    assert orders_client.card_orders[0]["paymentMethod"] == "credit-card"
    assert orders_client.card_orders[0]["paymentDetails"]["id"] == "pi_1"


async def test_no_payment_method_is_invalid(cart, controller, orders_client, user):
    placement = OrderPlacement(cart, controller, orders_client, user)

    result = await placement.place_order(paypal_details())

    assert result.status == PlacementStatus.INVALID
    assert orders_client.paypal_orders == []
