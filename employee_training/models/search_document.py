"""Search document model for the derived event index."""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class EventSearchDocument(SQLModel, table=True):
    """A denormalized, searchable copy of an event.

    Documents are rebuilt from EventRecord rows by the indexer and may lag
    behind the store. Attendee columns are wrapped in delimiters
    (";a;b;") so that a single user can be matched with LIKE "%;id;%".

    Attributes:
        team_id, event_id: Key of the source event.
        status, audience: Integer enum values copied from the event.
        registered_attendees_count: Copied counter, used for sorting by
            popularity and for skipping empty events in reminder sweeps.
        indexed_on: When this document was last refreshed.
    """
    team_id: str = Field(primary_key=True)
    event_id: str = Field(primary_key=True)
    name: str = Field(index=True)
    description: str = ""
    category_id: str | None = Field(default=None, index=True)
    status: int = Field(index=True)
    audience: int
    start_date: datetime | None = Field(default=None, index=True)
    end_date: datetime | None = Field(default=None, index=True)
    registered_attendees_count: int = 0
    mandatory_attendees: str = ";"
    optional_attendees: str = ";"
    registered_attendees: str = ";"
    auto_registered_attendees: str = ";"
    is_registration_closed: bool = False
    created_by: str | None = None
    created_on: datetime | None = None
    source_version: int = 0
    indexed_on: datetime = Field(default_factory=lambda: datetime.now(UTC))
