"""Calendar gateway backed by the organizer's Google Calendar.

Published training events are mirrored as calendar entries on the
organizer account. Registered and auto-registered users are added as
guests so the invitation lands in their own calendars; every write is sent
with `sendUpdates="all"` so guests are told about changes.
"""
import logging
from datetime import UTC, datetime
from pathlib import Path

import httpx
from googleapiclient.errors import HttpError
from jinja2 import Environment, FileSystemLoader, select_autoescape

from employee_training.calendar.client import get_calendar_service
from employee_training.core.config import settings
from employee_training.models import CalendarEventRef, Event, EventType, UserProfile
from employee_training.workflow.export import TYPE_LABELS
from employee_training.workflow.gateways import UserDirectory

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

_templates = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)

RRULE_UNTIL_FORMAT = "%Y%m%dT%H%M%SZ"


def first_session(event: Event) -> tuple[datetime, datetime]:
    """Start and end of the first daily session.

    Multi-day events repeat daily, so the first session ends on the start
    day at the end date's clock time.
    """
    start = event.start_date
    end = event.end_date
    if event.number_of_occurrences > 1:
        end = datetime.combine(start.date(), end.timetz())
    return start, end


def recurrence(event: Event) -> list[str]:
    if event.number_of_occurrences <= 1:
        return []
    until = event.end_date.astimezone(UTC).strftime(RRULE_UNTIL_FORMAT)
    return [f"RRULE:FREQ=DAILY;UNTIL={until}"]


class GoogleCalendarGateway:
    """Create, update and cancel calendar entries for training events.

    Args:
        users: Directory used to turn attendee ids into guest addresses.
        service: Calendar v3 service; defaults to the organizer service
            from `calendar.client`.
        calendar_id: Calendar holding the events.
        time_zone: IANA zone name sent with start and end times.
    """

    def __init__(
        self,
        users: UserDirectory,
        service=None,
        calendar_id: str | None = None,
        time_zone: str | None = None,
        app_base_url: str | None = None,
    ):
        self.users = users
        self._service = service
        self.calendar_id = calendar_id or settings.google_calendar_id
        self.time_zone = time_zone or settings.calendar_time_zone
        self.app_base_url = app_base_url or settings.app_base_url

    @property
    def service(self):
        return self._service if self._service is not None else get_calendar_service()

    def render_description(self, event: Event) -> str:
        template = _templates.get_template("event_body.html")
        return template.render(
            event=event,
            type_label=TYPE_LABELS.get(event.type, ""),
            in_person=EventType.IN_PERSON,
            event_link=f"{self.app_base_url}/events/{event.event_id}?team_id={event.team_id}",
        )

    def build_body(self, event: Event, guests: list[UserProfile]) -> dict:
        """Calendar resource for an event and its guest list."""
        start, end = first_session(event)
        location = event.venue if event.type == EventType.IN_PERSON else event.meeting_link

        body = {
            "summary": event.name,
            "description": self.render_description(event),
            "location": location or "",
            "start": {"dateTime": start.isoformat(), "timeZone": self.time_zone},
            "end": {"dateTime": end.isoformat(), "timeZone": self.time_zone},
            "attendees": [
                {"email": guest.user_principal_name, "displayName": guest.display_name}
                for guest in guests
                if guest.user_principal_name
            ],
            "guestsCanSeeOtherGuests": False,
            "extendedProperties": {
                "private": {"teamId": event.team_id, "eventId": event.event_id},
            },
        }
        rules = recurrence(event)
        if rules:
            body["recurrence"] = rules
        if event.selected_color:
            body["extendedProperties"]["private"]["color"] = event.selected_color
        return body

    async def _guests(self, event: Event) -> list[UserProfile]:
        attendee_ids = event.attendees()
        if not attendee_ids:
            return []
        return await self.users.get_users(attendee_ids)

    async def create_event(self, event: Event) -> CalendarEventRef | None:
        try:
            body = self.build_body(event, await self._guests(event))
            created = (
                self.service.events()
                .insert(calendarId=self.calendar_id, body=body, sendUpdates="all")
                .execute()
            )
        except (HttpError, httpx.HTTPError, RuntimeError) as e:
            logger.error(f"Failed to create calendar entry for event {event.event_id}: {e}")
            return None

        logger.info(f"Created calendar entry {created['id']} for event {event.event_id}")
        return CalendarEventRef(id=created["id"], web_link=created.get("htmlLink"))

    async def update_event(self, event: Event) -> CalendarEventRef | None:
        if not event.graph_event_id:
            logger.error(f"Event {event.event_id} has no calendar entry to update")
            return None

        try:
            body = self.build_body(event, await self._guests(event))
            updated = (
                self.service.events()
                .update(
                    calendarId=self.calendar_id,
                    eventId=event.graph_event_id,
                    body=body,
                    sendUpdates="all",
                )
                .execute()
            )
        except (HttpError, httpx.HTTPError, RuntimeError) as e:
            logger.error(f"Failed to update calendar entry {event.graph_event_id}: {e}")
            return None

        return CalendarEventRef(id=updated["id"], web_link=updated.get("htmlLink"))

    async def cancel_event(self, calendar_event_id: str, organizer_id: str, comment: str) -> bool:
        """Cancel the entry and notify guests.

        The comment is written into the description before the delete so it
        shows on the cancelled entry. An entry that is already gone counts
        as cancelled.
        """
        if not calendar_event_id:
            return False

        try:
            events = self.service.events()
            events.patch(
                calendarId=self.calendar_id,
                eventId=calendar_event_id,
                body={"description": comment},
                sendUpdates="none",
            ).execute()
            events.delete(
                calendarId=self.calendar_id,
                eventId=calendar_event_id,
                sendUpdates="all",
            ).execute()
        except HttpError as e:
            if e.resp.status in (404, 410):
                logger.info(f"Calendar entry {calendar_event_id} was already cancelled")
                return True
            logger.error(f"Failed to cancel calendar entry {calendar_event_id}: {e}")
            return False
        except RuntimeError as e:
            logger.error(f"Failed to cancel calendar entry {calendar_event_id}: {e}")
            return False

        logger.info(f"Cancelled calendar entry {calendar_event_id} on behalf of {organizer_id}")
        return True
