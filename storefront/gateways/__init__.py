# Payment provider gateways

from .paypal import PayPalGateway, PayPalApiError
from .card import CardGateway, CardGatewayError

__all__ = ["PayPalGateway", "PayPalApiError", "CardGateway", "CardGatewayError"]
