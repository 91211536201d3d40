"""Checkout session state"""

import uuid
from datetime import datetime
from typing import Optional
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from ..models.checkout import PaymentMethod, ShippingAddress


class CheckoutStep(IntEnum):
    """Position in the checkout flow"""
    SHIPPING = 1
    PAYMENT_METHOD = 2
    REVIEW = 3


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


def _new_session_id() -> str:
    return str(uuid.uuid4())


@dataclass
class CheckoutSession:
    """Client-held checkout session. Discarded on success or abandon."""
    session_id: str = field(default_factory=_new_session_id)
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    step: CheckoutStep = CheckoutStep.SHIPPING
    shipping_data: Optional[ShippingAddress] = None
    payment_method: Optional[PaymentMethod] = None
    status: SessionStatus = SessionStatus.ACTIVE
    order_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def move_to(self, step: CheckoutStep) -> None:
        """Update current step"""
        self.step = step
        self.updated_at = datetime.utcnow()

    def finish(self, status: SessionStatus, order_id: Optional[str] = None) -> None:
        """Leave the active state"""
        self.status = status
        self.order_id = order_id
        self.updated_at = datetime.utcnow()
