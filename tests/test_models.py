"""Tests for the domain models and request payloads."""

from datetime import UTC, datetime, time, timedelta, timezone

import pytest
from pydantic import ValidationError

from employee_training.core.errors import InvalidEventError
from employee_training.models import (
    Event,
    EventPayload,
    EventRecord,
    EventStatus,
    EventType,
    Outcome,
    SelectedAttendee,
)
from employee_training.models.event import normalize_user_id


def payload(**overrides) -> dict:
    fields = {
        "name": "Excel for analysts",
        "description": "Pivot tables and lookups",
        "category_id": "data",
        "type": EventType.TEAMS,
        "selected_color": "#00ff00",
        "start_date": datetime(2026, 3, 10, 9, 0, tzinfo=UTC),
        "end_date": datetime(2026, 3, 10, 12, 0, tzinfo=UTC),
        "maximum_number_of_participants": 20,
    }
    fields.update(overrides)
    return fields


class TestEventModel:
    """Tests for the Event model."""

    def test_attendee_ids_are_normalized(self):
        event = Event(registered_attendees=[" Alice ", "BOB", ""], mandatory_attendees="a;B;;c")
        assert event.registered_attendees == {"alice", "bob"}
        assert event.mandatory_attendees == {"a", "b", "c"}

    def test_naive_datetimes_are_utc(self):
        event = Event(start_date=datetime(2026, 3, 10, 9, 0))
        assert event.start_date.tzinfo == UTC

    def test_aware_datetimes_are_converted_to_utc(self):
        plus_two = timezone(timedelta(hours=2))
        event = Event(start_date=datetime(2026, 3, 10, 11, 0, tzinfo=plus_two))
        assert event.start_date == datetime(2026, 3, 10, 9, 0, tzinfo=UTC)
        assert event.start_date.tzinfo == UTC

    def test_attendees_lists_self_registered_first(self):
        event = Event(registered_attendees={"zed", "amy"}, auto_registered_attendees={"bob"})
        assert event.attendees() == ["amy", "zed", "bob"]

    def test_normalize_user_id(self):
        assert normalize_user_id(None) == ""
        assert normalize_user_id(" AbC ") == "abc"


class TestEventRecord:
    """Tests for flattening events into storage rows."""

    def test_sets_and_selection_are_flattened(self):
        event = Event(
            team_id="t",
            event_id="e",
            name="n",
            status=EventStatus.ACTIVE,
            registered_attendees={"b", "a"},
            selected_users_and_groups=[SelectedAttendee(id="g", is_group=True)],
        )

        record = EventRecord.from_event(event)

        assert record.registered_attendees == "a;b"
        assert record.optional_attendees == ""
        assert record.status == 2
        assert '"is_group": true' in record.selected_users_and_groups

    def test_record_back_to_event(self):
        record = EventRecord(
            team_id="t",
            event_id="e",
            name="n",
            version=7,
            status=3,
            type=1,
            audience=2,
            auto_registered_attendees="x;y",
        )

        event = record.to_event()

        assert event.etag == 7
        assert event.status == EventStatus.CANCELLED
        assert event.type == EventType.IN_PERSON
        assert event.auto_registered_attendees == {"x", "y"}
        assert event.selected_users_and_groups == []


class TestOutcome:
    def test_only_success_is_truthy(self):
        assert Outcome.SUCCESS
        assert not Outcome.FAILED
        assert not Outcome.NOT_FOUND


class TestEventPayload:
    """Tests for organizer input validation."""

    def test_valid_payload(self):
        event = EventPayload(**payload()).to_event("team", "Organizer")
        assert event.team_id == "team"
        assert event.created_by == "Organizer"
        assert event.status == EventStatus.DRAFT

    def test_requires_photo_or_colour(self):
        with pytest.raises(ValidationError):
            EventPayload(**payload(selected_color=None))

    def test_photo_must_be_http_url(self):
        with pytest.raises(ValidationError):
            EventPayload(**payload(photo="ftp://images/x.png"))
        assert EventPayload(**payload(selected_color=None, photo="https://img.test/x.png"))

    def test_live_event_requires_link(self):
        with pytest.raises(ValidationError):
            EventPayload(**payload(type=EventType.LIVE_EVENT))
        assert EventPayload(**payload(type=EventType.LIVE_EVENT, meeting_link="https://live.test/1"))

    def test_in_person_requires_venue(self):
        with pytest.raises(ValidationError):
            EventPayload(**payload(type=EventType.IN_PERSON, venue="  "))

    def test_end_before_start(self):
        with pytest.raises(ValidationError):
            EventPayload(**payload(end_date=datetime(2026, 3, 9, 9, 0, tzinfo=UTC)))

    def test_times_are_combined_with_dates(self):
        """Same day with an end time earlier than the start time is rejected."""
        with pytest.raises(ValidationError):
            EventPayload(**payload(start_time=time(14, 0), end_time=time(10, 0)))

    def test_blank_name(self):
        with pytest.raises(ValidationError):
            EventPayload(**payload(name="   "))

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            EventPayload(**payload(maximum_number_of_participants=0))

    def test_check_schedule(self):
        event = EventPayload(**payload())
        event.check_schedule(datetime(2026, 3, 10, 23, 0, tzinfo=UTC))
        with pytest.raises(InvalidEventError):
            event.check_schedule(datetime(2026, 3, 11, 0, 1, tzinfo=UTC))
