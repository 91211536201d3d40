"""Analytics event routes"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..database.events import EventDatabase, event_db
from ..models.event import Event, EventCreate
from ..models.user import User
from ..security.auth import require_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])


def get_event_db() -> EventDatabase:
    return event_db


@router.post("", response_model=Event, status_code=201)
async def log_event(
    request: EventCreate,
    user: User = Depends(require_user),
    events: EventDatabase = Depends(get_event_db),
):
    """Record an analytics event for the signed-in user"""
    if request.user_id != user.id:
        raise HTTPException(status_code=403, detail="Cannot log events for another user")

    event = events.log_event(request)
    logger.debug(f"Event {event.event_type} logged for user {event.user_id}")
    return event
