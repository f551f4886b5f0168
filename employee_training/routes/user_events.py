"""Routes employees use to browse and register for training events."""
from fastapi import APIRouter, Depends, HTTPException, Query

from employee_training.core.dependencies import get_current_user, get_search_index, get_user_events
from employee_training.models import EventForUser, EventSearchDocument
from employee_training.search.index import EventSearchIndex
from employee_training.workflow.registration import UserEvents

router = APIRouter(prefix="/user-events", tags=["user-events"])


@router.get("/registered", response_model=list[EventSearchDocument])
async def registered_events(
    user_id: str = Depends(get_current_user),
    index: EventSearchIndex = Depends(get_search_index),
):
    """Upcoming events the caller is registered for."""
    return await index.registered_events(user_id)


@router.get("/mandatory", response_model=list[EventSearchDocument])
async def mandatory_events(
    user_id: str = Depends(get_current_user),
    index: EventSearchIndex = Depends(get_search_index),
):
    """Upcoming events that are mandatory for the caller."""
    return await index.mandatory_events(user_id)


@router.get("/{event_id}", response_model=EventForUser)
async def get_event(
    event_id: str,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    user_events: UserEvents = Depends(get_user_events),
):
    event = await user_events.get_event_for_user(event_id, team_id, user_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


@router.post("/{event_id}/register")
async def register(
    event_id: str,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    user_events: UserEvents = Depends(get_user_events),
):
    return {"success": await user_events.register(team_id, event_id, user_id)}


@router.delete("/{event_id}/register")
async def unregister(
    event_id: str,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    user_events: UserEvents = Depends(get_user_events),
):
    return {"success": await user_events.unregister(team_id, event_id, user_id)}
