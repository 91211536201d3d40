"""Cart analytics tracking"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING

import httpx

from ..models.user import User
from .errors import OrdersApiError

if TYPE_CHECKING:
    from .orders_client import OrdersClient

logger = logging.getLogger(__name__)

# Oldest events are dropped beyond this many undelivered ones
MAX_PENDING_EVENTS = 100


@dataclass
class CartEvent:
    """Analytics event waiting to be sent"""
    event_type: str
    user_id: str
    product_id: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)


class AnalyticsTracker:
    """
    Collects cart events and sends them to the events endpoint.

    Tracking never raises: events for anonymous users are skipped and
    delivery failures are logged and kept for the next flush. At most
    max_pending events are kept.
    """

    def __init__(
        self,
        client: Optional["OrdersClient"] = None,
        max_pending: int = MAX_PENDING_EVENTS,
    ):
        self.client = client
        self.max_pending = max_pending
        self.pending: list[CartEvent] = []

    def track(
        self,
        event_type: str,
        product_id: Optional[str],
        user: Optional[User],
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Queue an event"""
        if user is None:
            logger.debug(f"Skipping {event_type} event for anonymous user")
            return
        self.pending.append(
            CartEvent(
                event_type=event_type,
                user_id=user.id,
                product_id=product_id,
                metadata=metadata or {},
            )
        )
        self._trim()

    def _trim(self) -> None:
        overflow = len(self.pending) - self.max_pending
        if overflow > 0:
            logger.warning(f"Dropping {overflow} undelivered cart event(s)")
            del self.pending[:overflow]

    async def flush(self) -> int:
        """Send queued events. Returns the number delivered."""
        if self.client is None or not self.pending:
            return 0

        queued, self.pending = self.pending, []
        delivered = 0
        failed: list[CartEvent] = []
        for event in queued:
            try:
                await self.client.log_event(
                    event_type=event.event_type,
                    product_id=event.product_id,
                    user_id=event.user_id,
                    metadata=event.metadata,
                )
                delivered += 1
            except (OrdersApiError, httpx.HTTPError) as e:
                logger.warning(f"Error tracking event {event.event_type}: {e}")
                failed.append(event)

        self.pending = failed + self.pending
        self._trim()
        return delivered
