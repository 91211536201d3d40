"""Payment provider records and request bodies"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import CamelModel


class PaymentIntentStatus(str, Enum):
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"


class PayPalOrderStatus(str, Enum):
    CREATED = "CREATED"
    SAVED = "SAVED"
    APPROVED = "APPROVED"
    VOIDED = "VOIDED"
    COMPLETED = "COMPLETED"
    PAYER_ACTION_REQUIRED = "PAYER_ACTION_REQUIRED"


class PaymentIntentRecord(CamelModel):
    """Server-side staged card payment"""
    id: str
    # Provider states beyond the enum are passed through untouched
    status: Optional[str] = None
    amount: Optional[int] = None  # minor units
    payment_method_id: Optional[str] = None
    error_message: Optional[str] = None


class PayPalOrderRecord(CamelModel):
    """Server-side PayPal order"""
    id: str
    status: Optional[str] = None


class CreatePaymentIntentRequest(CamelModel):
    payment_method_id: str
    amount: Decimal = Field(gt=0)


class ConfirmPaymentIntentRequest(CamelModel):
    payment_intent_id: str


class PaymentIntentResponse(CamelModel):
    payment_intent: PaymentIntentRecord


class PayPalActionRequest(CamelModel):
    """Body of POST /orders/ (create or capture a PayPal order)"""
    action: str
    total: Optional[Decimal] = None
    order_id: Optional[str] = Field(default=None, alias="orderID")


class PayPalApproval(CamelModel):
    """Approval data handed back by the PayPal buttons"""
    order_id: str = Field(alias="orderID")
    payer_id: Optional[str] = Field(default=None, alias="payerID")
