"""SQL-backed event store with optimistic concurrency.

Each row carries a `version` column that is surfaced as the event's etag.
`replace` only succeeds if the caller read the latest version; otherwise it
raises ConcurrencyConflictError and the workflow's retry policy re-runs the
whole read-modify-write from a fresh read.
"""
import logging

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlmodel import Session

from employee_training.core.errors import ConcurrencyConflictError, InvalidEventError
from employee_training.models import Event, EventRecord

logger = logging.getLogger(__name__)


class SqlEventStore:
    """Event persistence keyed by (team_id, event_id)."""

    def __init__(self, engine: Engine):
        self.engine = engine

    async def get(self, team_id: str, event_id: str) -> Event | None:
        """Load an event, including soft-deleted ones. Returns None if absent."""
        if not team_id:
            raise InvalidEventError("The team Id should have a valid value")
        if not event_id:
            raise InvalidEventError("The event Id should have a valid value")

        with Session(self.engine) as session:
            record = session.get(EventRecord, (team_id, event_id))
            return record.to_event() if record else None

    async def insert_or_replace(self, event: Event) -> bool:
        """Unconditionally write the event, creating it if needed.

        Updates `event.etag` to the stored version.
        """
        self._check_key(event)
        record = EventRecord.from_event(event)

        with Session(self.engine) as session:
            existing = session.get(EventRecord, (event.team_id, event.event_id))
            record.version = existing.version + 1 if existing else 1
            session.merge(record)
            session.commit()

        event.etag = record.version
        logger.debug(f"Upserted event {event.event_id} (version {record.version})")
        return True

    async def replace(self, event: Event) -> bool:
        """Conditionally overwrite an existing event.

        The write only applies if the stored version still equals
        `event.etag`. Raises ConcurrencyConflictError otherwise, including
        when the row vanished since it was read.
        """
        self._check_key(event)
        if event.etag is None:
            raise InvalidEventError("Replace requires an event read from the store (missing etag)")

        record = EventRecord.from_event(event)
        values = record.model_dump(exclude={"team_id", "event_id", "version"})
        values["version"] = event.etag + 1

        statement = (
            update(EventRecord)
            .where(EventRecord.team_id == event.team_id)
            .where(EventRecord.event_id == event.event_id)
            .where(EventRecord.version == event.etag)
            .values(**values)
        )

        with Session(self.engine) as session:
            result = session.execute(statement)
            session.commit()

        if result.rowcount == 0:
            logger.info(
                f"Version conflict writing event {event.event_id} in team {event.team_id} "
                f"at etag {event.etag}"
            )
            raise ConcurrencyConflictError(event.team_id, event.event_id, event.etag)

        event.etag += 1
        return True

    @staticmethod
    def _check_key(event: Event) -> None:
        if event is None:
            raise InvalidEventError("Event details should be provided")
        if not event.team_id or not event.event_id:
            raise InvalidEventError("Event must have both a team Id and an event Id")
