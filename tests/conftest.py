"""Shared fixtures and fakes"""

import asyncio
from decimal import Decimal
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from storefront.core.config import Settings
from storefront.database.events import EventDatabase
from storefront.database.orders import OrderDatabase
from storefront.database.products import ProductDatabase
from storefront.gateways.card import CardGatewayError
from storefront.gateways.paypal import PayPalApiError
from storefront.main import app
from storefront.models.cart import Product
from storefront.models.checkout import PaymentMethod, ShippingAddress
from storefront.models.payment import PaymentIntentRecord, PayPalOrderRecord
from storefront.models.user import User
from storefront.routes import events as events_routes
from storefront.routes import orders as orders_routes
from storefront.routes import products as products_routes
from storefront.security.auth import create_access_token
from storefront.services.analytics import AnalyticsTracker
from storefront.services.cart_store import CartStore
from storefront.services.checkout import CheckoutController
from storefront.services.payments import PayPalSdk
from storefront.services.storage import MemoryStorage


# ==================== Client side ====================


@pytest.fixture
def user() -> User:
    return User(id="user-1", email="ada@example.com")


@pytest.fixture
def mug() -> Product:
    return Product(id="prod-mug", name="Mug", price=Decimal("10.00"), available_quantity=5)


@pytest.fixture
def lamp() -> Product:
    return Product(id="prod-lamp", name="Lamp", price=Decimal("24.99"), available_quantity=2)


@pytest.fixture
def shipping() -> ShippingAddress:
    return ShippingAddress(full_name="A", address="B", city="C", postal_code="1", country="D")


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def tracker() -> AnalyticsTracker:
    return AnalyticsTracker()


@pytest.fixture
def cart(storage, tracker) -> CartStore:
    return CartStore(storage, tracker=tracker)


@pytest.fixture
def controller(cart) -> CheckoutController:
    return CheckoutController(cart)


@pytest.fixture
async def review_controller(cart, mug, user, shipping) -> CheckoutController:
    """Controller on the review step with two mugs in the cart, paying by PayPal"""
    cart.add_to_cart(mug, user)
    cart.add_to_cart(mug, user)
    controller = CheckoutController(cart)
    await controller.begin_checkout()
    controller.next_step(shipping)
    controller.next_step(PaymentMethod.PAYPAL)
    return controller


@pytest.fixture(autouse=True)
def unload_paypal_sdk():
    PayPalSdk.unload()
    yield
    PayPalSdk.unload()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        paypal_client_id="paypal-client",
        paypal_client_secret="paypal-secret",
        stripe_publishable_key="pk_test",
        stripe_secret_key="sk_test",
    )


class FakeProvider:
    """PaymentProvider double with scripted answers"""

    def __init__(self):
        self.order_id = "PAYPAL-ORDER-1"
        self.capture_status: Optional[str] = "COMPLETED"
        self.capture_error: Optional[Exception] = None
        self.intent: Optional[PaymentIntentRecord] = PaymentIntentRecord(
            id="pi_1", status="requires_confirmation", amount=2000
        )
        self.confirmed = PaymentIntentRecord(id="pi_1", status="succeeded", amount=2000)
        self.create_intent_error: Optional[Exception] = None
        self.confirm_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.before_return = None
        self.calls: list[tuple] = []

    async def _pause(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.before_return is not None:
            self.before_return()

    async def create_order(self, total):
        self.calls.append(("create_order", total))
        return self.order_id

    async def capture(self, order_id):
        self.calls.append(("capture", order_id))
        await self._pause()
        if self.capture_error:
            raise self.capture_error
        return PayPalOrderRecord(id=order_id, status=self.capture_status)

    async def create_intent(self, payment_method_token, amount):
        self.calls.append(("create_intent", payment_method_token, amount))
        await self._pause()
        if self.create_intent_error:
            raise self.create_intent_error
        return self.intent

    async def confirm_intent(self, intent_id):
        self.calls.append(("confirm_intent", intent_id))
        if self.confirm_error:
            raise self.confirm_error
        return self.confirmed

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class FakeTokenizer:
    def __init__(self, token: str = "pm_test"):
        self.token = token
        self.cards = []

    async def tokenize(self, card):
        self.cards.append(card)
        return self.token


class FakeOrdersClient:
    """Orders backend double for order placement"""

    def __init__(self):
        self.paypal_orders: list[dict] = []
        self.card_orders: list[dict] = []
        self.error: Optional[Exception] = None
        self.order_id = "ORD-TEST"
        self.before_return = None

    async def _answer(self, bucket: list, data: dict) -> dict:
        bucket.append(data)
        if self.before_return is not None:
            self.before_return()
        if self.error:
            raise self.error
        return {"status": "success", "orderId": self.order_id}

    async def create_paypal_order_record(self, order_data):
        return await self._answer(self.paypal_orders, order_data)

    async def create_credit_card_order(self, order_data):
        return await self._answer(self.card_orders, order_data)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def tokenizer() -> FakeTokenizer:
    return FakeTokenizer()


@pytest.fixture
def orders_client() -> FakeOrdersClient:
    return FakeOrdersClient()


# ==================== Server side ====================


class FakePayPalGateway:
    def __init__(self):
        self.status = "COMPLETED"
        self.capture_status = "COMPLETED"
        self.error: Optional[Exception] = None
        self.captured: list[str] = []

    async def create_order(self, total):
        if self.error:
            raise self.error
        return PayPalOrderRecord(id="PAYPAL-NEW", status="CREATED")

    async def capture_order(self, order_id):
        if self.error:
            raise self.error
        self.captured.append(order_id)
        return PayPalOrderRecord(id=order_id, status=self.capture_status)

    async def get_order(self, order_id):
        if self.error:
            raise self.error
        return PayPalOrderRecord(id=order_id, status=self.status)


class FakeCardGateway:
    def __init__(self):
        self.status = "succeeded"
        self.error: Optional[Exception] = None

    async def create_intent(self, payment_method_id, amount):
        if self.error:
            raise self.error
        return PaymentIntentRecord(
            id="pi_new",
            status="requires_confirmation",
            amount=int(amount * 100),
            payment_method_id=payment_method_id,
        )

    async def confirm_intent(self, intent_id):
        if self.error:
            raise self.error
        return PaymentIntentRecord(id=intent_id, status=self.status)

    async def retrieve_intent(self, intent_id):
        if self.error:
            raise self.error
        return PaymentIntentRecord(id=intent_id, status=self.status)


def already_captured_error() -> PayPalApiError:
    return PayPalApiError(
        422,
        {"name": "UNPROCESSABLE_ENTITY", "details": [{"issue": "ORDER_ALREADY_CAPTURED"}]},
    )


def card_error(message: str = "Your card was declined.") -> CardGatewayError:
    return CardGatewayError(message)


@pytest.fixture
def paypal_gateway() -> FakePayPalGateway:
    return FakePayPalGateway()


@pytest.fixture
def card_gateway() -> FakeCardGateway:
    return FakeCardGateway()


@pytest.fixture
def order_store() -> OrderDatabase:
    return OrderDatabase()


@pytest.fixture
def product_store() -> ProductDatabase:
    return ProductDatabase(
        {
            "prod-mug": Product(id="prod-mug", name="Mug", price=Decimal("10.00"), available_quantity=5),
        }
    )


@pytest.fixture
def event_store() -> EventDatabase:
    return EventDatabase()


@pytest.fixture
def api(paypal_gateway, card_gateway, order_store, product_store, event_store):
    """App with fake gateways and fresh stores"""
    app.dependency_overrides[orders_routes.get_paypal_gateway] = lambda: paypal_gateway
    app.dependency_overrides[orders_routes.get_card_gateway] = lambda: card_gateway
    app.dependency_overrides[orders_routes.get_order_db] = lambda: order_store
    app.dependency_overrides[orders_routes.get_product_db] = lambda: product_store
    app.dependency_overrides[products_routes.get_product_db] = lambda: product_store
    app.dependency_overrides[events_routes.get_event_db] = lambda: event_store
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def http(api) -> TestClient:
    return TestClient(api)


@pytest.fixture
def token(user) -> str:
    return create_access_token(user)


@pytest.fixture
def auth_headers(token) -> dict:
    return {"Authorization": f"Bearer {token}"}
