"""Notification payloads sent by the workflow engines.

Messages are plain dicts with a `kind`, a `title`, a short `text` and a list
of `facts`. The bot gateway turns them into activities; richer card layouts
belong to the bot layer.
"""
from typing import Any

from employee_training.models import Event, EventAudience, EventType

DATE_FORMAT = "%a %d %b %Y, %H:%M UTC"


def _when(event: Event) -> str:
    if not event.start_date:
        return ""
    start = event.start_date.strftime(DATE_FORMAT)
    if event.end_date and event.end_day() != event.start_day():
        return f"{start} to {event.end_date.strftime(DATE_FORMAT)}"
    return start


def _where(event: Event) -> str:
    if event.type == EventType.IN_PERSON:
        return event.venue or ""
    if event.type == EventType.LIVE_EVENT:
        return event.meeting_link or ""
    return "Teams meeting"


def _facts(event: Event) -> list[dict[str, str]]:
    facts = [{"title": "Category", "value": event.category_name}] if event.category_name else []
    return facts + [
        {"title": "When", "value": _when(event)},
        {"title": "Where", "value": _where(event)},
        {
            "title": "Registrations",
            "value": f"{event.registered_attendees_count}/{event.maximum_number_of_participants}",
        },
    ]


def _reminder_value(event: Event) -> str:
    when = _when(event)
    return f"{when} ({event.category_name})" if event.category_name else when


def _event_ref(event: Event) -> dict[str, Any]:
    return {"team_id": event.team_id, "event_id": event.event_id, "name": event.name}


def team_event_message(event: Event, created_by_name: str | None, app_base_url: str) -> dict[str, Any]:
    """Announcement posted (and later refreshed) in the L&D team channel."""
    audience = "Private" if event.audience == EventAudience.PRIVATE else "Public"
    return {
        "kind": "team_event",
        "title": event.name,
        "text": f"{audience} training published by {created_by_name or 'the L&D team'}.",
        "facts": _facts(event),
        "event": _event_ref(event),
        "link": f"{app_base_url}/events/{event.event_id}?team_id={event.team_id}",
    }


def auto_registered_message(event: Event) -> dict[str, Any]:
    return {
        "kind": "auto_registered",
        "title": f"You have been registered for {event.name}",
        "text": "This training is mandatory for you, so we registered you automatically.",
        "facts": _facts(event),
        "event": _event_ref(event),
    }


def event_updated_message(event: Event) -> dict[str, Any]:
    return {
        "kind": "updated",
        "title": f"{event.name} has been updated",
        "text": "The organizers changed the details of a training you registered for.",
        "facts": _facts(event),
        "event": _event_ref(event),
    }


def event_cancelled_message(event: Event) -> dict[str, Any]:
    return {
        "kind": "cancelled",
        "title": f"{event.name} has been cancelled",
        "text": "The organizers cancelled a training you registered for.",
        "facts": _facts(event),
        "event": _event_ref(event),
    }


def reminder_message(events: list[Event], period: str = "daily") -> dict[str, Any]:
    """Reminder for one or more upcoming events."""
    title = "Your trainings tomorrow" if period == "daily" else "Your trainings this week"
    return {
        "kind": "reminder",
        "period": period,
        "title": title,
        "text": ", ".join(e.name for e in events),
        "facts": [{"title": e.name, "value": _reminder_value(e)} for e in events],
        "events": [_event_ref(e) for e in events],
    }
