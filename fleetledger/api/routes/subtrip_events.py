"""
Subtrip audit trail routes.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from fleetledger.db.session import get_db
from fleetledger.api.dependencies import get_current_user
from fleetledger.models.subtrip_event import SubtripEvent, SubtripEventType
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.subtrip_event import SubtripEventResponse
from fleetledger.services.subtrip_event_service import (
    list_events_between,
    list_events_for_subtrip,
    render_event,
)

router = APIRouter(prefix="/subtrip-events", tags=["subtrip-events"])


def to_response(event: SubtripEvent) -> SubtripEventResponse:
    """Attach the display message to an event."""
    return SubtripEventResponse(
        id=event.id,
        subtrip_id=event.subtrip_id,
        event_type=event.event_type,
        timestamp=event.timestamp,
        details=event.details or {},
        user_id=event.user_id,
        user_name=event.user_name,
        message=render_event(event),
    )


@router.get("", response_model=List[SubtripEventResponse])
async def get_events_between(
    from_date: date,
    to_date: date,
    event_type: Optional[List[SubtripEventType]] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Events in a date range, for day-wise summaries."""
    events = list_events_between(db, current_user.tenant_id, from_date, to_date, event_type)
    return [to_response(event) for event in events]


@router.get("/{subtrip_id}", response_model=List[SubtripEventResponse])
async def get_subtrip_events(
    subtrip_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Audit trail of one subtrip."""
    events = list_events_for_subtrip(db, current_user.tenant_id, subtrip_id)
    return [to_response(event) for event in events]
