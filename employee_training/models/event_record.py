"""Storage row for training events.

This module defines the EventRecord table, the persisted form of an Event.
Attendee sets are flattened into semicolon-delimited strings and the
organizer's selection into JSON here and only here; the rest of the
application works with the `Event` domain model.

Storage choices:
    - **Composite key**: `(team_id, event_id)` mirrors the partition/row key
      of the original table storage layout, so all events of a team sit
      together.
    - **version**: incremented on every write and exposed to callers as the
      event's etag. Conditional replaces compare against it to detect
      concurrent modification.
"""

import json
from datetime import datetime, time

from pydantic import TypeAdapter
from sqlmodel import Field, SQLModel

from employee_training.models.event import Event, EventAudience, EventStatus, EventType
from employee_training.models.selection import SelectedAttendee

_selection_adapter = TypeAdapter(list[SelectedAttendee])


def join_ids(ids: set[str]) -> str:
    return ";".join(sorted(ids))


class EventRecord(SQLModel, table=True):
    """A persisted training event.

    Attributes:
        team_id: Partition component of the key.
        event_id: Row component of the key.
        version: Monotonic write counter used as the etag.
        mandatory_attendees, optional_attendees, registered_attendees,
            auto_registered_attendees: Semicolon-delimited user ids.
        selected_users_and_groups: JSON array of SelectedAttendee.
        status, audience, type: Integer enum values.
    """
    team_id: str = Field(primary_key=True)
    event_id: str = Field(primary_key=True)
    version: int = Field(default=1)

    graph_event_id: str | None = None
    team_card_activity_id: str | None = None

    name: str
    description: str = ""
    category_id: str | None = Field(default=None, index=True)
    type: int = Field(default=EventType.TEAMS)
    venue: str | None = None
    meeting_link: str | None = None
    photo: str | None = None
    selected_color: str | None = None

    start_date: datetime | None = Field(default=None, index=True)
    start_time: time | None = None
    end_date: datetime | None = Field(default=None, index=True)
    end_time: time | None = None
    number_of_occurrences: int = 1

    maximum_number_of_participants: int = 1
    audience: int = Field(default=EventAudience.PUBLIC)
    status: int = Field(default=EventStatus.DRAFT, index=True)
    is_auto_register: bool = False

    mandatory_attendees: str = ""
    optional_attendees: str = ""
    registered_attendees: str = ""
    auto_registered_attendees: str = ""
    registered_attendees_count: int = 0
    selected_users_and_groups: str = ""

    is_registration_closed: bool = False
    is_removed: bool = Field(default=False, index=True)

    created_by: str | None = None
    created_on: datetime | None = None
    updated_by: str | None = None
    updated_on: datetime | None = None

    @classmethod
    def from_event(cls, event: Event) -> "EventRecord":
        """Flatten a domain event into a row (version is left to the store)."""
        data = event.model_dump(
            exclude={
                "etag",
                "category_name",
                "mandatory_attendees",
                "optional_attendees",
                "registered_attendees",
                "auto_registered_attendees",
                "selected_users_and_groups",
                "is_mandatory_for_user",
                "is_registered_for_user",
                "can_user_register",
            }
        )
        data["type"] = int(event.type)
        data["audience"] = int(event.audience)
        data["status"] = int(event.status)
        return cls(
            **data,
            mandatory_attendees=join_ids(event.mandatory_attendees),
            optional_attendees=join_ids(event.optional_attendees),
            registered_attendees=join_ids(event.registered_attendees),
            auto_registered_attendees=join_ids(event.auto_registered_attendees),
            selected_users_and_groups=(
                json.dumps([s.model_dump() for s in event.selected_users_and_groups])
                if event.selected_users_and_groups
                else ""
            ),
        )

    def to_event(self) -> Event:
        """Rebuild the domain event, exposing `version` as the etag."""
        data = self.model_dump(
            exclude={"version", "selected_users_and_groups", "type", "audience", "status"}
        )
        selection = (
            _selection_adapter.validate_json(self.selected_users_and_groups)
            if self.selected_users_and_groups
            else []
        )
        return Event(
            **data,
            type=EventType(self.type),
            audience=EventAudience(self.audience),
            status=EventStatus(self.status),
            selected_users_and_groups=selection,
            etag=self.version,
        )
