"""Derived search index over training events.

The index is a denormalized copy of the event table used for listings and
reminder sweeps. It is rebuilt on demand after writes and may briefly lag
behind the store. Soft-deleted events are dropped from the index, so they
never show up in any listing.
"""
import asyncio
import logging
from collections.abc import Callable
from datetime import UTC, datetime, time, timedelta

from apscheduler.schedulers.base import BaseScheduler
from sqlalchemy import or_
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from employee_training.models import EventRecord, EventSearchDocument, EventStatus
from employee_training.models.event import normalize_user_id

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "index_refresh"


def wrap_ids(delimited: str) -> str:
    """";a;b" style column value from a stored "a;b" list, so ";id;" matches one user."""
    ids = [i for i in (delimited or "").split(";") if i]
    return ";" + ";".join(ids) + ";" if ids else ";"


def _naive_utc(value: datetime) -> datetime:
    # Stored datetimes are naive UTC.
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _contains_user(column, user_id: str):
    return col(column).contains(f";{normalize_user_id(user_id)};", autoescape=True)


class EventSearchIndex:
    """Search documents maintained from the event table.

    Args:
        engine: Database holding the event table and the search documents.
        clock: Returns the current UTC time; injectable for tests.
        scheduler: When given and running, `refresh_on_demand` queues a
            rebuild on it instead of rebuilding before returning.
    """

    def __init__(
        self,
        engine: Engine,
        clock: Callable[[], datetime] | None = None,
        scheduler: BaseScheduler | None = None,
    ):
        self.engine = engine
        self.clock = clock or (lambda: datetime.now(UTC))
        self.scheduler = scheduler
        self._lock = asyncio.Lock()

    async def refresh_on_demand(self) -> None:
        """Ask for the index to catch up with the event table.

        With a running scheduler this only queues a rebuild and returns.
        Requests made while one is still pending replace it, so a burst of
        writes costs a single rebuild.
        """
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.add_job(
                self.rebuild,
                id=REFRESH_JOB_ID,
                replace_existing=True,
                max_instances=2,
                misfire_grace_time=None,
            )
            return
        await self.rebuild()

    async def rebuild(self) -> None:
        """Bring every document up to date with its source row, off the event loop."""
        async with self._lock:
            await asyncio.to_thread(self._rebuild)

    def _rebuild(self) -> None:
        stats = {"indexed": 0, "removed": 0}
        now = self.clock()

        with Session(self.engine) as session:
            records = session.exec(select(EventRecord)).all()
            documents = {
                (d.team_id, d.event_id): d for d in session.exec(select(EventSearchDocument)).all()
            }
            record_keys = set()

            for record in records:
                key = (record.team_id, record.event_id)
                record_keys.add(key)
                document = documents.get(key)
                if record.is_removed:
                    if document is not None:
                        session.delete(document)
                        stats["removed"] += 1
                    continue

                if document is not None and document.source_version == record.version:
                    continue
                session.merge(self._document(record, now))
                stats["indexed"] += 1

            for key, document in documents.items():
                if key not in record_keys:
                    session.delete(document)
                    stats["removed"] += 1

            session.commit()

        logger.debug(f"Search index refreshed: {stats}")

    @staticmethod
    def _document(record: EventRecord, now: datetime) -> EventSearchDocument:
        return EventSearchDocument(
            team_id=record.team_id,
            event_id=record.event_id,
            name=record.name,
            description=record.description,
            category_id=record.category_id,
            status=record.status,
            audience=record.audience,
            start_date=record.start_date,
            end_date=record.end_date,
            registered_attendees_count=record.registered_attendees_count,
            mandatory_attendees=wrap_ids(record.mandatory_attendees),
            optional_attendees=wrap_ids(record.optional_attendees),
            registered_attendees=wrap_ids(record.registered_attendees),
            auto_registered_attendees=wrap_ids(record.auto_registered_attendees),
            is_registration_closed=record.is_registration_closed,
            created_by=record.created_by,
            created_on=record.created_on,
            source_version=record.version,
            indexed_on=now,
        )

    def _query(self, *conditions) -> list[EventSearchDocument]:
        statement = select(EventSearchDocument)
        for condition in conditions:
            statement = statement.where(condition)
        statement = statement.order_by(col(EventSearchDocument.start_date), col(EventSearchDocument.name))
        with Session(self.engine) as session:
            return list(session.exec(statement).all())

    async def team_events(self, team_id: str, status: EventStatus) -> list[EventSearchDocument]:
        """A team's events by status.

        Active events whose end date has passed are reported as Completed
        rather than Active.
        """
        now = _naive_utc(self.clock())
        if status == EventStatus.COMPLETED:
            return await self.completed_events(team_id)
        conditions = [EventSearchDocument.team_id == team_id, EventSearchDocument.status == int(status)]
        if status == EventStatus.ACTIVE:
            conditions.append(col(EventSearchDocument.end_date) >= now)
        return self._query(*conditions)

    async def completed_events(self, team_id: str) -> list[EventSearchDocument]:
        now = _naive_utc(self.clock())
        return self._query(
            EventSearchDocument.team_id == team_id,
            or_(
                EventSearchDocument.status == int(EventStatus.COMPLETED),
                (EventSearchDocument.status == int(EventStatus.ACTIVE))
                & (col(EventSearchDocument.end_date) < now),
            ),
        )

    async def registered_events(self, user_id: str) -> list[EventSearchDocument]:
        """Upcoming or running Active events the user is registered for."""
        now = _naive_utc(self.clock())
        return self._query(
            EventSearchDocument.status == int(EventStatus.ACTIVE),
            col(EventSearchDocument.end_date) >= now,
            or_(
                _contains_user(EventSearchDocument.registered_attendees, user_id),
                _contains_user(EventSearchDocument.auto_registered_attendees, user_id),
            ),
        )

    async def mandatory_events(self, user_id: str) -> list[EventSearchDocument]:
        """Upcoming or running Active events that are mandatory for the user."""
        now = _naive_utc(self.clock())
        return self._query(
            EventSearchDocument.status == int(EventStatus.ACTIVE),
            col(EventSearchDocument.end_date) >= now,
            _contains_user(EventSearchDocument.mandatory_attendees, user_id),
        )

    async def events_starting_between(self, start: datetime, end: datetime) -> list[EventSearchDocument]:
        """Active events with attendees that start in [start, end)."""
        return self._query(
            EventSearchDocument.status == int(EventStatus.ACTIVE),
            EventSearchDocument.registered_attendees_count > 0,
            col(EventSearchDocument.start_date) >= _naive_utc(start),
            col(EventSearchDocument.start_date) < _naive_utc(end),
        )

    async def day_before_reminders(self) -> list[EventSearchDocument]:
        """Events starting tomorrow (UTC)."""
        tomorrow = datetime.combine(self.clock().date() + timedelta(days=1), time.min)
        return await self.events_starting_between(tomorrow, tomorrow + timedelta(days=1))

    async def week_before_reminders(self) -> list[EventSearchDocument]:
        """Events starting within the next seven days (UTC), tomorrow included."""
        tomorrow = datetime.combine(self.clock().date() + timedelta(days=1), time.min)
        return await self.events_starting_between(tomorrow, tomorrow + timedelta(days=7))
