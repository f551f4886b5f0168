"""Request payloads for the event endpoints.

`EventPayload` carries the fields an organizer edits and enforces the
structural rules on them. Rules that depend on the current time are
checked separately by `check_schedule` so drafts of past events can still
be edited.
"""

from datetime import UTC, datetime, time

from pydantic import field_validator, model_validator
from sqlmodel import Field, SQLModel

from employee_training.core.errors import InvalidEventError
from employee_training.models.event import Event, EventAudience, EventStatus, EventType
from employee_training.models.selection import SelectedAttendee

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1000
VENUE_MAX_LENGTH = 200


def _is_http_url(value: str | None) -> bool:
    return bool(value) and value.lower().startswith(("http://", "https://"))


class EventPayload(SQLModel):
    """Editable fields of a training event as submitted by the L&D team."""
    event_id: str | None = None
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    description: str = Field(min_length=1, max_length=DESCRIPTION_MAX_LENGTH)
    category_id: str = Field(min_length=1)
    type: EventType
    venue: str | None = Field(default=None, max_length=VENUE_MAX_LENGTH)
    meeting_link: str | None = None
    photo: str | None = None
    selected_color: str | None = None

    start_date: datetime
    start_time: time | None = None
    end_date: datetime
    end_time: time | None = None

    maximum_number_of_participants: int = Field(ge=1)
    audience: EventAudience = EventAudience.PUBLIC
    is_auto_register: bool = False
    mandatory_attendees: list[str] = Field(default_factory=list)
    optional_attendees: list[str] = Field(default_factory=list)
    selected_users_and_groups: list[SelectedAttendee] = Field(default_factory=list)

    @field_validator("name", "description", "category_id")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @model_validator(mode="after")
    def _check_rules(self):
        if not self.photo and not self.selected_color:
            raise ValueError("Either a photo or a colour must be provided")
        if self.photo and not _is_http_url(self.photo):
            raise ValueError("The photo must be an http(s) URL")
        if self.type == EventType.LIVE_EVENT and not _is_http_url(self.meeting_link):
            raise ValueError("Live events require an http(s) meeting link")
        if self.type == EventType.IN_PERSON and not (self.venue or "").strip():
            raise ValueError("In-person events require a venue")
        if self._start() > self._end():
            raise ValueError("The event cannot end before it starts")
        return self

    def _start(self) -> datetime:
        return _combine(self.start_date, self.start_time)

    def _end(self) -> datetime:
        return _combine(self.end_date, self.end_time)

    def check_schedule(self, now: datetime) -> None:
        """Reject events that would start in the past. Used when creating."""
        if self._start().date() < now.astimezone(UTC).date():
            raise InvalidEventError("The start date cannot be in the past")

    def to_event(self, team_id: str, user_id: str) -> Event:
        return Event(
            team_id=team_id,
            event_id=self.event_id,
            name=self.name,
            description=self.description,
            category_id=self.category_id,
            type=self.type,
            venue=self.venue,
            meeting_link=self.meeting_link,
            photo=self.photo,
            selected_color=self.selected_color,
            start_date=self.start_date,
            start_time=self.start_time,
            end_date=self.end_date,
            end_time=self.end_time,
            maximum_number_of_participants=self.maximum_number_of_participants,
            audience=self.audience,
            status=EventStatus.DRAFT,
            is_auto_register=self.is_auto_register,
            mandatory_attendees=self.mandatory_attendees,
            optional_attendees=self.optional_attendees,
            selected_users_and_groups=self.selected_users_and_groups,
            created_by=user_id,
            updated_by=user_id,
        )


def _combine(day: datetime, at: time | None) -> datetime:
    value = datetime.combine(day.date(), at, tzinfo=day.tzinfo) if at is not None else day
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class StatusChange(SQLModel):
    status: EventStatus
