"""Event routes used by the L&D team to manage its training events."""
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from employee_training.core.dependencies import (
    get_current_user,
    get_event_workflow,
    get_search_index,
)
from employee_training.models import EventPayload, EventSearchDocument, EventStatus, Outcome, StatusChange
from employee_training.search.index import EventSearchIndex
from employee_training.workflow.export import to_csv
from employee_training.workflow.lifecycle import EventWorkflow

router = APIRouter(prefix="/events", tags=["events"])


def outcome_response(outcome: Outcome) -> dict:
    """200 with the result for found events, 404 otherwise."""
    if outcome == Outcome.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Event not found")
    return {"success": bool(outcome)}


@router.get("/", response_model=list[EventSearchDocument])
async def list_events(
    team_id: str = Query(...),
    status: EventStatus = Query(EventStatus.ACTIVE),
    index: EventSearchIndex = Depends(get_search_index),
):
    """List a team's events by status from the search index."""
    return await index.team_events(team_id, status)


@router.post("/draft")
async def create_draft(
    payload: EventPayload,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Save a new event as a draft."""
    payload.check_schedule(datetime.now(UTC))
    event = payload.to_event(team_id, user_id)
    event.event_id = None
    created = await workflow.create_draft(event)
    return {"success": created, "event_id": event.event_id}


@router.patch("/draft")
async def update_draft(
    payload: EventPayload,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Edit an existing draft."""
    if not payload.event_id:
        raise HTTPException(status_code=400, detail="event_id is required")
    return outcome_response(await workflow.update_draft(payload.to_event(team_id, user_id)))


@router.post("/")
async def publish_event(
    payload: EventPayload,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """
    Publish an event.

    Accepts either a new event or an existing draft (identified by
    `event_id`). The calendar entry and team announcement are created
    before the event is stored as Active.
    """
    payload.check_schedule(datetime.now(UTC))
    event = payload.to_event(team_id, user_id)
    response = outcome_response(await workflow.publish(event))
    response["event_id"] = event.event_id
    return response


@router.patch("/")
async def update_active_event(
    payload: EventPayload,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Edit a published event and propagate the change to attendees."""
    if not payload.event_id:
        raise HTTPException(status_code=400, detail="event_id is required")
    return outcome_response(await workflow.update_active(payload.to_event(team_id, user_id)))


@router.delete("/{event_id}")
async def delete_draft(
    event_id: str,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Soft-delete a draft."""
    return outcome_response(await workflow.delete_draft(team_id, event_id))


@router.post("/{event_id}/close")
async def close_registrations(
    event_id: str,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Stop accepting registrations."""
    return {"success": await workflow.close_registrations(team_id, event_id, user_id)}


@router.post("/{event_id}/status")
async def change_status(
    event_id: str,
    change: StatusChange,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Change the event status, e.g. cancel an active event."""
    return {"success": await workflow.change_status(team_id, event_id, change.status, user_id)}


@router.get("/{event_id}/export")
async def export_attendees(
    event_id: str,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Download the attendee list as CSV."""
    rows = await workflow.export_attendees(team_id, event_id)
    if rows is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return Response(
        content=to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{event_id}.csv"'},
    )


@router.post("/{event_id}/remind")
async def send_reminder(
    event_id: str,
    team_id: str = Query(...),
    user_id: str = Depends(get_current_user),
    workflow: EventWorkflow = Depends(get_event_workflow),
):
    """Send a reminder to everyone registered for the event."""
    await workflow.send_reminder(team_id, event_id)
    return {"success": True}
