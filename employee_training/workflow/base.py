"""Collaborator wiring and side-effect helpers shared by the workflow engines."""
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from employee_training.core.config import settings
from employee_training.core.errors import NotificationError
from employee_training.core.retry import RetryPolicy
from employee_training.models import Event
from employee_training.notifications.messages import team_event_message
from employee_training.workflow.gateways import (
    CalendarGateway,
    CategoryDirectory,
    EventStore,
    GroupDirectory,
    NotificationGateway,
    SearchIndex,
    UserDirectory,
)

logger = logging.getLogger(__name__)


def compute_occurrences(event: Event) -> int:
    """Number of daily occurrences between the start and end calendar days."""
    if not event.start_date or not event.end_date:
        return 1
    return (event.end_day() - event.start_day()).days + 1


class WorkflowEngine:
    """Holds the collaborators and the side effects both engines share.

    Args:
        store: Event persistence.
        calendar: External calendar the published events live in.
        index: Search index refreshed after each successful write.
        notifications: Bot messaging for users and team channels.
        groups: Group expansion for private-event selections.
        users: Directory lookups for display names.
        retry_policy: Policy wrapping read-modify-write operations.
        clock: Returns the current UTC time; injectable for tests.
        categories: Category names shown in messages and exports; without it
            events show their category id.
    """

    def __init__(
        self,
        store: EventStore,
        calendar: CalendarGateway,
        index: SearchIndex,
        notifications: NotificationGateway,
        groups: GroupDirectory,
        users: UserDirectory,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
        app_base_url: str | None = None,
        categories: CategoryDirectory | None = None,
    ):
        self.store = store
        self.calendar = calendar
        self.index = index
        self.notifications = notifications
        self.groups = groups
        self.users = users
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.clock = clock or (lambda: datetime.now(UTC))
        self.app_base_url = app_base_url or settings.app_base_url
        self.categories = categories

    async def _refresh_index(self) -> None:
        """Trigger an index refresh; failures are logged, never raised."""
        try:
            await self.index.refresh_on_demand()
        except Exception:
            logger.exception("Search index refresh failed")

    async def _bind_category(self, event: Event) -> None:
        """Look up the display name of the event's category."""
        if self.categories is None or not event.category_id or event.category_name:
            return
        names = await self.categories.get_names([event.category_id])
        event.category_name = names.get(event.category_id)

    async def _post_team_card(self, event: Event, created_by_name: str | None = None) -> str | None:
        """Post the event announcement in the team channel, or update the existing one."""
        await self._bind_category(event)
        if created_by_name is None and event.created_by:
            try:
                creator = await self.users.get_user(event.created_by)
            except httpx.HTTPError as e:
                logger.warning(f"Could not look up creator {event.created_by} of event {event.event_id}: {e}")
                creator = None
            created_by_name = creator.display_name if creator else None

        message = team_event_message(event, created_by_name, self.app_base_url)
        return await self.notifications.send_to_team(
            event.team_id,
            message,
            update_message_id=event.team_card_activity_id,
        )

    async def _refresh_team_card(self, event: Event) -> None:
        """Update the team announcement after a committed write."""
        try:
            await self._post_team_card(event)
        except NotificationError:
            logger.exception(f"Failed to refresh team card for event {event.event_id}")

    async def _notify_users(self, user_ids: list[str], message: dict[str, Any]) -> None:
        """Send a message to users after a committed write; failures are logged."""
        if not user_ids:
            return
        try:
            await self.notifications.send_to_users(user_ids, message)
        except NotificationError:
            logger.exception(f"Failed to send '{message.get('kind')}' notification to {len(user_ids)} users")
