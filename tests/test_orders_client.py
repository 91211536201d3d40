"""Checkout client against the orders app, over ASGI"""

import json
from decimal import Decimal

import httpx
import pytest

from storefront.core.config import Settings
from storefront.models.checkout import PaymentMethod
from storefront.services.analytics import AnalyticsTracker
from storefront.services.cart_store import CartStore
from storefront.services.errors import OrdersApiError
from storefront.services.flow import CheckoutFlow
from storefront.services.orders_client import OrdersClient
from storefront.services.payments import BackendPaymentProvider, CardDetails
from storefront.services.placement import PlacementStatus
from storefront.services.storage import MemoryStorage

from .conftest import already_captured_error


@pytest.fixture
async def client(api, token):
    client = OrdersClient("http://testserver", token=token, transport=httpx.ASGITransport(app=api))
    yield client
    await client.close()


async def test_product_lookup(client):
    product = await client.get_product("prod-mug")

    assert product.price == Decimal("10.00")
    assert product.available_quantity == 5


async def test_unknown_product_raises(client):
    with pytest.raises(OrdersApiError) as exc_info:
        await client.get_product("nope")

    assert exc_info.value.status_code == 404
    assert exc_info.value.error_message == "Product not found"


async def test_paypal_create_and_capture(client):
    order_id = await client.create_paypal_order(Decimal("20.00"))
    captured = await client.capture_paypal_order(order_id)

    assert order_id == "PAYPAL-NEW"
    assert captured == {"status": "COMPLETED", "orderID": "PAYPAL-NEW"}


async def test_already_captured_surfaces_message(client, paypal_gateway):
    paypal_gateway.error = already_captured_error()

    with pytest.raises(OrdersApiError) as exc_info:
        await client.capture_paypal_order("PAYPAL-1")

    assert exc_info.value.is_already_captured


async def test_payment_intents(client):
    intent = await client.create_payment_intent("pm_1", Decimal("20.00"))
    confirmed = await client.confirm_payment_intent(intent.id)

    assert intent.status == "requires_confirmation"
    assert intent.amount == 2000
    assert confirmed.status == "succeeded"


async def test_paypal_checkout_against_backend(client, user, mug, shipping, settings, order_store, product_store):
    cart = CartStore(MemoryStorage())
    cart.add_to_cart(mug, user)
    cart.add_to_cart(mug, user)
    await cart.refresh_availability(client)

    flow = CheckoutFlow(cart, client, BackendPaymentProvider(client), user, settings)
    await flow.start()
    flow.controller.next_step(shipping)
    flow.controller.next_step(PaymentMethod.PAYPAL)

    order_id = await flow.paypal.create_order(cart.get_total())
    await flow.paypal.on_approve({"orderID": order_id, "payerID": "PAYER-1"})

    result = flow.placement.result
    assert result.success
    assert order_store.get_order(result.order_id).provider_reference == "PAYPAL-NEW"
    assert product_store.get_product("prod-mug").available_quantity == 3
    assert cart.items == ()

    history = await client.get_order_history(user.id)
    assert history["total"] == 1
    assert history["orders"][0]["orderId"] == result.order_id


async def _card_flow(client, user, mug, shipping, settings, tokenizer) -> CheckoutFlow:
    cart = CartStore(MemoryStorage())
    cart.add_to_cart(mug, user)
    flow = CheckoutFlow(cart, client, BackendPaymentProvider(client), user, settings, tokenizer=tokenizer)
    await flow.start()
    flow.controller.next_step(shipping)
    flow.controller.next_step(PaymentMethod.CREDIT_CARD)
    return flow


async def test_same_payment_placed_from_two_sessions(client, user, mug, shipping, settings, tokenizer, order_store):
    first = await _card_flow(client, user, mug, shipping, settings, tokenizer)
    card = CardDetails(number="4242424242424242", exp_month=1, exp_year=2031, cvc="999")
    details = await first.card.submit(card, first.cart.get_total())

    assert first.placement.result.success
    assert first.cart.items == ()

    second = await _card_flow(client, user, mug, shipping, settings, tokenizer)
    result = await second.placement.place_order(details)

    assert result.status == PlacementStatus.ALREADY_CAPTURED
    assert second.cart.items[0].product_id == "prod-mug"
    assert len(order_store.orders) == 1


async def test_analytics_flush(client, user, event_store):
    tracker = AnalyticsTracker(client)
    tracker.track("add_to_cart_new", "prod-mug", user, {"quantity": 1})
    tracker.track("remove_from_cart", "prod-mug", None)

    assert await tracker.flush() == 1
    assert tracker.pending == []
    assert event_store.events[0].event_type == "add_to_cart_new"
    assert event_store.events[0].metadata == {"quantity": 1}


async def test_analytics_keeps_undelivered_events(api, user):
    anonymous = OrdersClient("http://testserver", transport=httpx.ASGITransport(app=api))
    tracker = AnalyticsTracker(anonymous)
    tracker.track("add_to_cart", "prod-mug", user)

    assert await tracker.flush() == 0
    assert len(tracker.pending) == 1
    await anonymous.close()


async def test_flow_from_settings(api, user, token, mug, tmp_path, event_store):
    settings = Settings(
        server_url="http://testserver",
        cart_storage_dir=str(tmp_path / "cart"),
        paypal_client_id="paypal-client",
    )
    flow = CheckoutFlow.from_settings(user, token, settings, transport=httpx.ASGITransport(app=api))
    flow.cart.add_to_cart(mug, user)

    await flow.close()

    assert (tmp_path / "cart" / "cart.json").exists()
    assert event_store.events[0].event_type == "add_to_cart_new"
    assert isinstance(flow.placement.client, OrdersClient)


async def test_payment_intent_amount_is_sent_as_string():
    sent = []

    def handler(request: httpx.Request) -> httpx.Response:
        sent.append(json.loads(request.content))
        return httpx.Response(200, json={"paymentIntent": {"id": "pi_1", "status": "requires_confirmation"}})

    client = OrdersClient("http://testserver", transport=httpx.MockTransport(handler))
    await client.create_payment_intent("pm_1", Decimal("19.99"))
    await client.close()

    assert sent == [{"paymentMethodId": "pm_1", "amount": "19.99"}]


def test_analytics_queue_is_capped(user, caplog):
    tracker = AnalyticsTracker(max_pending=3)
    for quantity in range(1, 6):
        tracker.track("update_cart_quantity", "prod-mug", user, {"quantity": quantity})

    assert [e.metadata["quantity"] for e in tracker.pending] == [3, 4, 5]
    assert "Dropping 1 undelivered cart event(s)" in caplog.text


async def test_analytics_requeue_respects_cap(api, user):
    anonymous = OrdersClient("http://testserver", transport=httpx.ASGITransport(app=api))
    tracker = AnalyticsTracker(anonymous, max_pending=2)
    for event_type in ("add_to_cart_new", "add_to_cart", "remove_from_cart"):
        tracker.track(event_type, "prod-mug", user)

    assert await tracker.flush() == 0
    assert [e.event_type for e in tracker.pending] == ["add_to_cart", "remove_from_cart"]
    await anonymous.close()
