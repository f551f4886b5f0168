"""Training event domain model.

This module defines the Event model which represents a training event
published by an L&D team, together with the enumerations describing its
status, audience and delivery type. Attendee lists are modelled as sets of
normalized user identifiers; the delimited storage form only exists inside
the event store.
"""

from datetime import UTC, date, datetime, time
from enum import IntEnum
from uuid import uuid4

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from employee_training.models.selection import SelectedAttendee


class EventStatus(IntEnum):
    """Lifecycle status. Values match the stored integers."""
    DRAFT = 1
    ACTIVE = 2
    CANCELLED = 3
    COMPLETED = 4


class EventAudience(IntEnum):
    """Who may register: anyone, or only the listed attendees."""
    PUBLIC = 1
    PRIVATE = 2


class EventType(IntEnum):
    """How the training is delivered."""
    IN_PERSON = 1
    TEAMS = 2
    LIVE_EVENT = 3


def normalize_user_id(user_id: str | None) -> str:
    """Canonical form of a directory object id used for set membership."""
    return (user_id or "").strip().lower()


def new_event_id() -> str:
    return str(uuid4())


class Event(SQLModel):
    """A training event owned by an L&D team.

    Identity is the `(team_id, event_id)` pair and never changes after
    creation. `registered_attendees_count` is a denormalized counter equal to
    the combined size of `registered_attendees` and
    `auto_registered_attendees`; it is maintained by the workflow's attendee
    helpers rather than recomputed on read.

    Attributes:
        team_id: Id of the L&D team that owns the event.
        event_id: Event identifier, assigned on first save if absent.
        graph_event_id: Id of the calendar entry, set once published.
        team_card_activity_id: Id of the message posted in the team channel,
            used to update rather than re-post the announcement.
        mandatory_attendees: Users required to attend (Private events).
        optional_attendees: Users invited but not required (Private events).
        registered_attendees: Users who registered themselves.
        auto_registered_attendees: Mandatory users registered automatically.
        selected_users_and_groups: The organizer's picker selection, kept so
            the attendee lists can be re-resolved on edit.
        category_name: Display name of the category, looked up for messages
            and exports; never stored with the event.
        etag: Storage version used for optimistic concurrency.
    """
    team_id: str = ""
    event_id: str | None = None
    graph_event_id: str | None = None
    team_card_activity_id: str | None = None

    name: str = ""
    description: str = ""
    category_id: str | None = None
    category_name: str | None = None
    type: EventType = EventType.TEAMS
    venue: str | None = None
    meeting_link: str | None = None
    photo: str | None = None
    selected_color: str | None = None

    start_date: datetime | None = None
    start_time: time | None = None
    end_date: datetime | None = None
    end_time: time | None = None
    number_of_occurrences: int = 1

    maximum_number_of_participants: int = 1
    audience: EventAudience = EventAudience.PUBLIC
    status: EventStatus = EventStatus.DRAFT
    is_auto_register: bool = False

    mandatory_attendees: set[str] = Field(default_factory=set)
    optional_attendees: set[str] = Field(default_factory=set)
    registered_attendees: set[str] = Field(default_factory=set)
    auto_registered_attendees: set[str] = Field(default_factory=set)
    registered_attendees_count: int = 0
    selected_users_and_groups: list[SelectedAttendee] = Field(default_factory=list)

    is_registration_closed: bool = False
    is_removed: bool = False

    created_by: str | None = None
    created_on: datetime | None = None
    updated_by: str | None = None
    updated_on: datetime | None = None

    etag: int | None = None

    @field_validator(
        "mandatory_attendees",
        "optional_attendees",
        "registered_attendees",
        "auto_registered_attendees",
        mode="before",
    )
    @classmethod
    def _normalize_ids(cls, value):
        if value is None:
            return set()
        if isinstance(value, str):
            value = value.split(";")
        return {normalize_user_id(v) for v in value if normalize_user_id(v)}

    @field_validator("start_date", "end_date", "created_on", "updated_on")
    @classmethod
    def _assume_utc(cls, value: datetime | None):
        # SQLite hands back naive datetimes; everything is stored in UTC.
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def attendees(self) -> list[str]:
        """All registered users, self-registered first, in stable order."""
        return sorted(self.registered_attendees) + sorted(self.auto_registered_attendees)

    def start_day(self) -> date | None:
        return self.start_date.date() if self.start_date else None

    def end_day(self) -> date | None:
        return self.end_date.date() if self.end_date else None


class EventForUser(Event):
    """An event annotated with flags specific to the viewing user."""
    is_mandatory_for_user: bool = False
    is_registered_for_user: bool = False
    can_user_register: bool = False
