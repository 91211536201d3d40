"""Checkout and order models"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field

from .base import CamelModel
from .cart import CartLineItem


class PaymentMethod(str, Enum):
    PAYPAL = "paypal"
    CREDIT_CARD = "credit-card"


class ShippingAddress(CamelModel):
    """Shipping address submitted on the first checkout step"""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    full_name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)


class PaymentDetails(CamelModel):
    """Provider-neutral success indicator handed to order placement"""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    status: Optional[str] = None
    provider: PaymentMethod
    raw: dict[str, Any] = {}


class OrderRequest(CamelModel):
    """Order payload posted by the checkout client"""
    user_id: str
    shipping_data: Optional[ShippingAddress] = None
    # Kept as a plain string so unsupported methods reach the handler
    payment_method: str
    cart_items: list[CartLineItem]
    total_amount: Decimal = Field(ge=0)
    payment_details: dict[str, Any] = {}

    @property
    def payment_id(self) -> Optional[str]:
        return self.payment_details.get("id") or self.payment_details.get("orderID")


class Order(CamelModel):
    """Persisted order"""
    order_id: str
    user_id: str
    shipping_data: Optional[ShippingAddress] = None
    payment_method: PaymentMethod
    items: list[CartLineItem]
    total_amount: Decimal
    payment_details: dict[str, Any] = {}
    provider_reference: str
    created_at: datetime


class OrderResponse(CamelModel):
    """Response from order creation"""
    status: str
    order_id: Optional[str] = None


class OrderHistoryResponse(CamelModel):
    """Paginated order history"""
    orders: list[Order]
    total: int
    page: int
    pages: int
