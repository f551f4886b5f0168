"""Contracts for the collaborators the workflow engines depend on."""
from typing import Any, Protocol

from employee_training.models import CalendarEventRef, Event, UserProfile


class EventStore(Protocol):
    async def get(self, team_id: str, event_id: str) -> Event | None: ...

    async def insert_or_replace(self, event: Event) -> bool: ...

    async def replace(self, event: Event) -> bool:
        """Raises ConcurrencyConflictError when `event.etag` is stale."""
        ...


class CalendarGateway(Protocol):
    async def create_event(self, event: Event) -> CalendarEventRef | None: ...

    async def update_event(self, event: Event) -> CalendarEventRef | None: ...

    async def cancel_event(self, calendar_event_id: str, organizer_id: str, comment: str) -> bool: ...


class SearchIndex(Protocol):
    async def refresh_on_demand(self) -> None: ...


class NotificationGateway(Protocol):
    async def send_to_users(self, user_ids: list[str], message: dict[str, Any]) -> None: ...

    async def send_to_team(
        self,
        team_id: str,
        message: dict[str, Any],
        update_message_id: str | None = None,
    ) -> str | None:
        """Post (or update) a message in the team channel; returns its id."""
        ...


class GroupDirectory(Protocol):
    async def get_group_members(self, group_id: str) -> list[str]: ...


class UserDirectory(Protocol):
    async def get_users(self, user_ids: list[str]) -> list[UserProfile]: ...

    async def get_user(self, user_id: str) -> UserProfile | None: ...


class CategoryDirectory(Protocol):
    async def get_names(self, category_ids: list[str]) -> dict[str, str]: ...
