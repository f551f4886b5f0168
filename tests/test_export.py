"""Tests for the attendee CSV export."""

import csv
import io
from datetime import UTC, datetime

from employee_training.models import CategoryPayload, Event, EventAudience, EventType, UserProfile
from employee_training.workflow.attendees import apply_attendee_change
from employee_training.workflow.export import EXPORT_HEADER, attendee_rows, to_csv

from conftest import TEAM_ID


def build_event(**overrides) -> Event:
    fields = dict(
        team_id=TEAM_ID,
        event_id="evt-1",
        name="First aid",
        description="Basic first aid",
        category_id="safety",
        type=EventType.IN_PERSON,
        venue="Room 4",
        audience=EventAudience.PUBLIC,
        start_date=datetime(2026, 3, 3, 9, 0, tzinfo=UTC),
        end_date=datetime(2026, 3, 3, 11, 30, tzinfo=UTC),
        maximum_number_of_participants=10,
    )
    fields.update(overrides)
    return Event(**fields)


class TestAttendeeRows:
    """Tests for the pivoted export layout."""

    def test_first_row_carries_metadata(self):
        event = build_event()
        apply_attendee_change(event, registered={"u1", "u2"}, auto_registered={"u3"})
        profiles = [
            UserProfile(id="u1", display_name="Zoe", user_principal_name="zoe@contoso.test"),
            UserProfile(id="u2", display_name="adam", user_principal_name="adam@contoso.test"),
            UserProfile(id="u3", display_name="Mia", user_principal_name="mia@contoso.test"),
        ]

        rows = attendee_rows(event, profiles)

        assert rows[0] == EXPORT_HEADER
        assert rows[1] == [
            "First aid",
            "Basic first aid",
            "safety",
            "In person",
            "Room 4",
            "3",
            "2026-03-03 09:00",
            "2026-03-03 11:30",
            "Public",
            "adam (adam@contoso.test)",
        ]
        assert rows[2] == [""] * 9 + ["Mia (mia@contoso.test)"]
        assert rows[3] == [""] * 9 + ["Zoe (zoe@contoso.test)"]

    def test_unknown_users_fall_back_to_id(self):
        event = build_event()
        apply_attendee_change(event, registered={"ghost"})

        rows = attendee_rows(event, [])

        assert rows[1][-1] == "ghost"

    def test_online_event_venue(self):
        event = build_event(type=EventType.TEAMS, venue="ignored", audience=EventAudience.PRIVATE)

        row = attendee_rows(event, [])[1]

        assert row[3] == "Teams meeting"
        assert row[4] == "Teams meeting"
        assert row[8] == "Private"

    def test_event_without_attendees(self):
        rows = attendee_rows(build_event(), [])

        assert len(rows) == 2
        assert rows[1][5] == "0"
        assert rows[1][-1] == ""


class TestToCsv:
    def test_quotes_every_field(self):
        text = to_csv([["a", 'say "hi"'], ["", "x,y"]])

        assert text.splitlines() == ['"a","say ""hi"""', '"","x,y"']
        assert list(csv.reader(io.StringIO(text)))[1] == ["", "x,y"]


class TestExportAttendees:
    """Tests for EventWorkflow.export_attendees."""

    async def test_uses_directory_profiles(self, workflow, store, directory, active_event):
        directory.add_user("alice", "Alice")
        apply_attendee_change(active_event, registered={"alice"})
        await store.insert_or_replace(active_event)

        rows = await workflow.export_attendees(TEAM_ID, active_event.event_id)

        assert rows[1][-1] == "Alice (alice@contoso.test)"

    async def test_category_name_replaces_id(self, workflow, store, categories, make_event):
        category = await categories.create(CategoryPayload(name="Information security"), "organizer")
        event = make_event(event_id="evt-cat", category_id=category.category_id)
        await store.insert_or_replace(event)

        rows = await workflow.export_attendees(TEAM_ID, "evt-cat")

        assert rows[1][2] == "Information security"

    async def test_unknown_category_shows_id(self, workflow, store, make_event):
        await store.insert_or_replace(make_event(event_id="evt-cat", category_id="retired"))

        rows = await workflow.export_attendees(TEAM_ID, "evt-cat")

        assert rows[1][2] == "retired"

    async def test_missing_event(self, workflow):
        assert await workflow.export_attendees(TEAM_ID, "missing") is None

    async def test_removed_event(self, workflow, make_event):
        draft = make_event()
        await workflow.create_draft(draft)
        await workflow.delete_draft(TEAM_ID, draft.event_id)

        assert await workflow.export_attendees(TEAM_ID, draft.event_id) is None
