# Checkout client services

from .storage import MemoryStorage, FileStorage
from .analytics import AnalyticsTracker
from .cart_store import CartStore, parse_quantity
from .checkout import CheckoutController
from .orders_client import OrdersClient
from .payments import (
    BackendPaymentProvider,
    CardCheckout,
    CardDetails,
    PayPalCheckout,
    StripeCardTokenizer,
)
from .placement import OrderPlacement, PlacementResult, PlacementStatus
from .flow import CheckoutFlow

__all__ = [
    "MemoryStorage",
    "FileStorage",
    "AnalyticsTracker",
    "CartStore",
    "parse_quantity",
    "CheckoutController",
    "OrdersClient",
    "BackendPaymentProvider",
    "CardCheckout",
    "CardDetails",
    "PayPalCheckout",
    "StripeCardTokenizer",
    "OrderPlacement",
    "PlacementResult",
    "PlacementStatus",
    "CheckoutFlow",
]
