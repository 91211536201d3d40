# Storefront Models

from .cart import Product, CartLineItem, CartState
from .checkout import (
    PaymentMethod,
    ShippingAddress,
    PaymentDetails,
    OrderRequest,
    Order,
    OrderResponse,
    OrderHistoryResponse,
)
from .payment import (
    PaymentIntentStatus,
    PayPalOrderStatus,
    PaymentIntentRecord,
    PayPalOrderRecord,
    CreatePaymentIntentRequest,
    ConfirmPaymentIntentRequest,
    PaymentIntentResponse,
    PayPalActionRequest,
    PayPalApproval,
)
from .event import Event, EventCreate
from .user import User

__all__ = [
    "Product",
    "CartLineItem",
    "CartState",
    "PaymentMethod",
    "ShippingAddress",
    "PaymentDetails",
    "OrderRequest",
    "Order",
    "OrderResponse",
    "OrderHistoryResponse",
    "PaymentIntentStatus",
    "PayPalOrderStatus",
    "PaymentIntentRecord",
    "PayPalOrderRecord",
    "CreatePaymentIntentRequest",
    "ConfirmPaymentIntentRequest",
    "PaymentIntentResponse",
    "PayPalActionRequest",
    "PayPalApproval",
    "Event",
    "EventCreate",
    "User",
]
