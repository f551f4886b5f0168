"""Tests for the Google Calendar gateway."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import httplib2
import httpx
import pytest
from googleapiclient.errors import HttpError

from employee_training.calendar.gateway import GoogleCalendarGateway, first_session, recurrence
from employee_training.models import Event, EventType
from employee_training.workflow.attendees import apply_attendee_change

from conftest import TEAM_ID


def http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b"")


@pytest.fixture(name="service")
def service_fixture() -> MagicMock:
    service = MagicMock()
    service.events.return_value.insert.return_value.execute.return_value = {
        "id": "g-1",
        "htmlLink": "https://calendar.google.com/e/g-1",
    }
    service.events.return_value.update.return_value.execute.return_value = {"id": "g-1"}
    return service


@pytest.fixture(name="gateway")
def gateway_fixture(directory, service) -> GoogleCalendarGateway:
    return GoogleCalendarGateway(
        directory,
        service=service,
        calendar_id="training@contoso.test",
        time_zone="Europe/London",
        app_base_url="https://training.test",
    )


def build_event(**overrides) -> Event:
    fields = dict(
        team_id=TEAM_ID,
        event_id="evt-1",
        name="Leadership 101",
        description="Leading <small> teams",
        type=EventType.IN_PERSON,
        venue="Room 12",
        selected_color="#ff0000",
        start_date=datetime(2026, 3, 3, 9, 0, tzinfo=UTC),
        end_date=datetime(2026, 3, 3, 17, 0, tzinfo=UTC),
        maximum_number_of_participants=10,
    )
    fields.update(overrides)
    return Event(**fields)


class TestSchedule:
    """Tests for session and recurrence helpers."""

    def test_single_day(self):
        event = build_event()
        assert first_session(event) == (event.start_date, event.end_date)
        assert recurrence(event) == []

    def test_multi_day_repeats_daily(self):
        event = build_event(end_date=datetime(2026, 3, 5, 17, 0, tzinfo=UTC), number_of_occurrences=3)

        start, end = first_session(event)

        assert end == datetime(2026, 3, 3, 17, 0, tzinfo=UTC)
        assert recurrence(event) == ["RRULE:FREQ=DAILY;UNTIL=20260305T170000Z"]


class TestBuildBody:
    """Tests for the calendar resource body."""

    def test_body(self, gateway, directory):
        alice = directory.add_user("alice", "Alice")
        event = build_event()

        body = gateway.build_body(event, [alice])

        assert body["summary"] == "Leadership 101"
        assert body["location"] == "Room 12"
        assert body["start"] == {"dateTime": "2026-03-03T09:00:00+00:00", "timeZone": "Europe/London"}
        assert body["attendees"] == [{"email": "alice@contoso.test", "displayName": "Alice"}]
        assert body["extendedProperties"]["private"] == {
            "teamId": TEAM_ID,
            "eventId": "evt-1",
            "color": "#ff0000",
        }
        assert "recurrence" not in body

    def test_description_is_escaped(self, gateway):
        description = gateway.render_description(build_event())
        assert "&lt;small&gt;" in description
        assert "Room 12" in description
        assert "https://training.test/events/evt-1?team_id=team-ld" in description

    def test_online_event_uses_meeting_link(self, gateway):
        event = build_event(type=EventType.LIVE_EVENT, meeting_link="https://live.test/1")
        body = gateway.build_body(event, [])
        assert body["location"] == "https://live.test/1"
        assert "https://live.test/1" in body["description"]


class TestCalendarCalls:
    """Tests for create, update and cancel."""

    async def test_create_invites_attendees(self, gateway, service, directory):
        directory.add_user("alice", "Alice")
        event = build_event()
        apply_attendee_change(event, registered={"alice"})

        ref = await gateway.create_event(event)

        assert ref.id == "g-1"
        assert ref.web_link == "https://calendar.google.com/e/g-1"
        kwargs = service.events.return_value.insert.call_args.kwargs
        assert kwargs["calendarId"] == "training@contoso.test"
        assert kwargs["sendUpdates"] == "all"
        assert kwargs["body"]["attendees"][0]["email"] == "alice@contoso.test"

    async def test_create_failure_returns_none(self, gateway, service):
        service.events.return_value.insert.return_value.execute.side_effect = http_error(500)
        assert await gateway.create_event(build_event()) is None

    async def test_guest_lookup_failure_returns_none(self, gateway, service, directory, monkeypatch):
        async def unavailable(user_ids):
            raise httpx.ConnectError("graph unreachable")

        monkeypatch.setattr(directory, "get_users", unavailable)
        event = build_event(graph_event_id="g-1")
        apply_attendee_change(event, registered={"alice"})

        assert await gateway.create_event(event) is None
        assert await gateway.update_event(event) is None
        service.events.return_value.insert.assert_not_called()
        service.events.return_value.update.assert_not_called()

    async def test_update_requires_calendar_id(self, gateway, service):
        assert await gateway.update_event(build_event()) is None
        service.events.return_value.update.assert_not_called()

    async def test_update(self, gateway, service):
        ref = await gateway.update_event(build_event(graph_event_id="g-1"))

        assert ref.id == "g-1"
        assert service.events.return_value.update.call_args.kwargs["eventId"] == "g-1"

    async def test_cancel_writes_comment_then_deletes(self, gateway, service):
        assert await gateway.cancel_event("g-1", "organizer", "Cancelled, sorry") is True

        events = service.events.return_value
        assert events.patch.call_args.kwargs["body"] == {"description": "Cancelled, sorry"}
        assert events.delete.call_args.kwargs == {
            "calendarId": "training@contoso.test",
            "eventId": "g-1",
            "sendUpdates": "all",
        }

    @pytest.mark.parametrize("status", [404, 410])
    async def test_cancel_of_gone_entry_succeeds(self, gateway, service, status):
        service.events.return_value.patch.return_value.execute.side_effect = http_error(status)
        assert await gateway.cancel_event("g-1", "organizer", "x") is True

    async def test_cancel_failure(self, gateway, service):
        service.events.return_value.delete.return_value.execute.side_effect = http_error(503)
        assert await gateway.cancel_event("g-1", "organizer", "x") is False

    async def test_missing_credentials(self, directory, monkeypatch):
        def no_service():
            raise RuntimeError("No valid calendar credentials")

        monkeypatch.setattr("employee_training.calendar.gateway.get_calendar_service", no_service)
        gateway = GoogleCalendarGateway(directory)

        assert await gateway.create_event(build_event()) is None
        assert await gateway.cancel_event("g-1", "organizer", "x") is False
