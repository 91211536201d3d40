"""Analytics event models"""

from datetime import datetime
from typing import Any, Optional

from .base import CamelModel


class EventCreate(CamelModel):
    """Request to log an analytics event"""
    user_id: str
    event_type: str  # e.g. add_to_cart_new, remove_from_cart
    product_id: Optional[str] = None
    metadata: dict[str, Any] = {}


class Event(EventCreate):
    """Stored analytics event"""
    id: str
    timestamp: datetime
