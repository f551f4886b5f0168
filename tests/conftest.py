"""Shared test fixtures."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, create_engine
from sqlmodel.pool import StaticPool

from employee_training.core.dependencies import (
    get_calendar,
    get_directory,
    get_engine,
    get_notifications,
)
from employee_training.core.errors import NotificationError
from employee_training.core.retry import RetryPolicy
from employee_training.main import app
from employee_training.models import CalendarEventRef, Event, EventStatus, EventType, UserProfile
from employee_training.storage.category_store import SqlCategoryStore
from employee_training.storage.event_store import SqlEventStore
from employee_training.workflow.lifecycle import EventWorkflow
from employee_training.workflow.registration import UserEvents

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)  # a Monday
TEAM_ID = "team-ld"
ORGANIZER = "organizer"


class FakeCalendar:
    """Records calendar calls; each kind of call can be made to fail."""

    def __init__(self):
        self.created: list[Event] = []
        self.updated: list[Event] = []
        self.cancelled: list[tuple[str, str, str]] = []
        self.fail_create = False
        self.fail_update = False
        self.fail_cancel = False
        self.on_cancel = None

    async def create_event(self, event: Event) -> CalendarEventRef | None:
        self.created.append(event.model_copy(deep=True))
        if self.fail_create:
            return None
        return CalendarEventRef(id=f"cal-{len(self.created)}", web_link="https://calendar.test/e")

    async def update_event(self, event: Event) -> CalendarEventRef | None:
        self.updated.append(event.model_copy(deep=True))
        if self.fail_update:
            return None
        return CalendarEventRef(id=event.graph_event_id)

    async def cancel_event(self, calendar_event_id: str, organizer_id: str, comment: str) -> bool:
        if self.on_cancel is not None:
            await self.on_cancel()
        self.cancelled.append((calendar_event_id, organizer_id, comment))
        return not self.fail_cancel


class FakeNotifications:
    """Records messages sent to users and teams."""

    def __init__(self):
        self.user_messages: list[tuple[list[str], dict]] = []
        self.team_messages: list[tuple[str, dict, str | None]] = []
        self.fail_team = False
        self.fail_users = False

    async def send_to_users(self, user_ids: list[str], message: dict) -> None:
        if self.fail_users:
            raise NotificationError("connector unavailable")
        self.user_messages.append((list(user_ids), message))

    async def send_to_team(self, team_id: str, message: dict, update_message_id: str | None = None) -> str | None:
        if self.fail_team:
            raise NotificationError("bot not installed")
        self.team_messages.append((team_id, message, update_message_id))
        return update_message_id or f"activity-{len(self.team_messages)}"

    def kinds(self) -> list[str]:
        return [message["kind"] for _, message in self.user_messages]


class FakeDirectory:
    """Groups and user profiles held in memory."""

    def __init__(self):
        self.groups: dict[str, list[str]] = {}
        self.profiles: dict[str, UserProfile] = {}

    def add_user(self, user_id: str, display_name: str) -> UserProfile:
        profile = UserProfile(
            id=user_id,
            display_name=display_name,
            user_principal_name=f"{user_id}@contoso.test",
        )
        self.profiles[user_id] = profile
        return profile

    async def get_group_members(self, group_id: str) -> list[str]:
        return list(self.groups.get(group_id, []))

    async def get_users(self, user_ids: list[str]) -> list[UserProfile]:
        return [self.profiles[u] for u in user_ids if u in self.profiles]

    async def get_user(self, user_id: str) -> UserProfile | None:
        return self.profiles.get(user_id)


class FakeIndex:
    def __init__(self):
        self.refreshes = 0
        self.fail = False

    async def refresh_on_demand(self) -> None:
        if self.fail:
            raise RuntimeError("index unavailable")
        self.refreshes += 1


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="store")
def store_fixture(engine) -> SqlEventStore:
    return SqlEventStore(engine)


@pytest.fixture(name="categories")
def categories_fixture(engine) -> SqlCategoryStore:
    return SqlCategoryStore(engine, clock=lambda: NOW)


@pytest.fixture(name="calendar")
def calendar_fixture() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture(name="notifications")
def notifications_fixture() -> FakeNotifications:
    return FakeNotifications()


@pytest.fixture(name="directory")
def directory_fixture() -> FakeDirectory:
    directory = FakeDirectory()
    directory.add_user(ORGANIZER, "Olivia Organizer")
    return directory


@pytest.fixture(name="index")
def index_fixture() -> FakeIndex:
    return FakeIndex()


@pytest.fixture(name="workflow")
def workflow_fixture(store, calendar, index, notifications, directory, categories) -> EventWorkflow:
    """Lifecycle engine over the in-memory store, with a fixed clock and no retry delay."""
    return EventWorkflow(
        store,
        calendar,
        index,
        notifications,
        directory,
        directory,
        retry_policy=RetryPolicy(max_attempts=5, backoff_step=0),
        clock=lambda: NOW,
        app_base_url="https://training.test",
        categories=categories,
        cancel_comment="Cancelled by the L&D team",
    )


@pytest.fixture(name="user_events")
def user_events_fixture(store, calendar, index, notifications, directory, categories) -> UserEvents:
    return UserEvents(
        store,
        calendar,
        index,
        notifications,
        directory,
        directory,
        retry_policy=RetryPolicy(max_attempts=5, backoff_step=0),
        clock=lambda: NOW,
        app_base_url="https://training.test",
        categories=categories,
    )


@pytest.fixture(name="make_event")
def make_event_fixture():
    """Build an unsaved event starting tomorrow; keyword arguments override fields."""

    def make(**overrides) -> Event:
        start = NOW + timedelta(days=1)
        fields = dict(
            team_id=TEAM_ID,
            name="Secure coding basics",
            description="Hands-on session on common vulnerabilities",
            category_id="security",
            type=EventType.TEAMS,
            selected_color="#0078d4",
            start_date=start,
            end_date=start + timedelta(hours=2),
            maximum_number_of_participants=10,
            created_by=ORGANIZER,
        )
        fields.update(overrides)
        return Event(**fields)

    return make


@pytest.fixture(name="active_event")
async def active_event_fixture(store, make_event) -> Event:
    """An Active public event already stored, with a calendar entry."""
    event = make_event(
        event_id="evt-active",
        status=EventStatus.ACTIVE,
        graph_event_id="cal-existing",
        team_card_activity_id="activity-existing",
        created_on=NOW - timedelta(days=3),
    )
    await store.insert_or_replace(event)
    return event


@pytest.fixture(name="check_invariants")
def check_invariants_fixture():
    """Assert the attendee bookkeeping rules on an event."""

    def check(event: Event) -> None:
        assert event.registered_attendees_count == len(event.registered_attendees) + len(
            event.auto_registered_attendees
        )
        assert 0 <= event.registered_attendees_count <= event.maximum_number_of_participants
        assert not event.registered_attendees & event.auto_registered_attendees

    return check


@pytest.fixture(name="client")
def client_fixture(engine, calendar, notifications, directory):
    """Create a test client backed by the test database and fake integrations."""
    app.dependency_overrides[get_engine] = lambda: engine
    app.dependency_overrides[get_calendar] = lambda: calendar
    app.dependency_overrides[get_notifications] = lambda: notifications
    app.dependency_overrides[get_directory] = lambda: directory
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
