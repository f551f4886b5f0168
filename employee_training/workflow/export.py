"""CSV export of an event's attendees."""
import csv
import io

from employee_training.models import Event, EventAudience, EventType, UserProfile

EXPORT_HEADER = [
    "Event name",
    "Event description",
    "Category",
    "Training type",
    "Venue",
    "Number of registrations",
    "Start date",
    "End date",
    "Audience",
    "Registered users",
]

EXPORT_DATE_FORMAT = "%Y-%m-%d %H:%M"

TYPE_LABELS = {
    EventType.IN_PERSON: "In person",
    EventType.TEAMS: "Teams meeting",
    EventType.LIVE_EVENT: "Live event",
}


def _format_date(value) -> str:
    return value.strftime(EXPORT_DATE_FORMAT) if value else ""


def attendee_labels(event: Event, profiles: list[UserProfile]) -> list[str]:
    """Sorted "Name (UPN)" labels; users missing from the directory show as their id."""
    by_id = {p.id.lower(): p for p in profiles if p and p.id}
    labels = []
    for user_id in event.attendees():
        profile = by_id.get(user_id)
        labels.append(profile.label() if profile else user_id)
    return sorted(labels, key=str.lower)


def event_metadata(event: Event) -> list[str]:
    venue = (event.venue or "") if event.type == EventType.IN_PERSON else "Teams meeting"
    return [
        event.name,
        event.description or "",
        event.category_name or event.category_id or "",
        TYPE_LABELS.get(event.type, ""),
        venue,
        str(event.registered_attendees_count),
        _format_date(event.start_date),
        _format_date(event.end_date),
        "Private" if event.audience == EventAudience.PRIVATE else "Public",
    ]


def attendee_rows(event: Event, profiles: list[UserProfile]) -> list[list[str]]:
    """Header plus one row per attendee.

    The first data row carries the event metadata; subsequent rows leave the
    metadata blank and only fill the attendee column. An event without
    attendees exports the metadata row with an empty attendee.
    """
    metadata = event_metadata(event)
    labels = attendee_labels(event, profiles) or [""]

    rows = [list(EXPORT_HEADER)]
    for position, label in enumerate(labels):
        prefix = metadata if position == 0 else [""] * len(metadata)
        rows.append(prefix + [label])
    return rows


def to_csv(rows: list[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL)
    writer.writerows(rows)
    return buffer.getvalue()
