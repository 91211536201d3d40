"""Analytics event storage"""

import uuid
from datetime import datetime

from ..models.event import Event, EventCreate


class EventDatabase:
    """In-memory event log"""

    def __init__(self):
        self.events: list[Event] = []

    def log_event(self, request: EventCreate) -> Event:
        event = Event(
            id=str(uuid.uuid4()),
            timestamp=datetime.utcnow(),
            **request.model_dump(),
        )
        self.events.append(event)
        return event


# Singleton instance
event_db = EventDatabase()
