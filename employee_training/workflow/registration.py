"""Self-service registration for employees.

Register and unregister run the complete check, mutate, persist and
propagate sequence inside the retry policy, so a version conflict at
persist time re-evaluates eligibility and capacity against a fresh read.

A calendar failure after the store write makes the call return False but
leaves the write in place; the calendar catches up on the next successful
update of the event.
"""
import logging

from employee_training.models import Event, EventAudience, EventForUser, EventStatus
from employee_training.models.event import normalize_user_id
from employee_training.workflow.attendees import (
    apply_attendee_change,
    has_free_seat,
    is_eligible,
    is_registered,
)
from employee_training.workflow.base import WorkflowEngine, compute_occurrences

logger = logging.getLogger(__name__)


class UserEvents(WorkflowEngine):
    """Registration operations performed by employees on published events."""

    def _accepts_changes(self, event: Event | None) -> bool:
        """Whether the event exists, is Active and has not ended yet."""
        if event is None or event.is_removed or event.status != EventStatus.ACTIVE:
            return False
        if event.end_date and event.end_date < self.clock():
            return False
        return True

    async def _propagate(self, event: Event) -> bool:
        """Push a committed attendee change to the calendar, team card and index."""
        await self._bind_category(event)
        event.number_of_occurrences = compute_occurrences(event)
        calendar_event = await self.calendar.update_event(event)
        if calendar_event is None:
            logger.error(
                f"Calendar entry of event {event.event_id} not updated after attendee change; "
                f"it will be resynced on the next update"
            )
            return False

        await self._refresh_team_card(event)
        await self._refresh_index()
        return True

    async def register(self, team_id: str, event_id: str, user_id: str) -> bool:
        """Register a user for an event. Registering twice is a no-op success."""
        user_id = normalize_user_id(user_id)
        if not team_id or not event_id or not user_id:
            return False

        async def operation() -> bool:
            event = await self.store.get(team_id, event_id)
            if not self._accepts_changes(event):
                return False
            if not is_eligible(event, user_id):
                logger.info(f"User {user_id} is not invited to private event {event_id}")
                return False
            if is_registered(event, user_id):
                return True
            if event.is_registration_closed or not has_free_seat(event):
                return False

            apply_attendee_change(event, registered=event.registered_attendees | {user_id})
            if not await self.store.replace(event):
                logger.error(f"Registration of {user_id} for event {event_id} was not saved")
                return False
            logger.info(f"User {user_id} registered for event {event_id} ({event.registered_attendees_count} seats taken)")
            return await self._propagate(event)

        return await self.retry_policy.run(operation)

    async def unregister(self, team_id: str, event_id: str, user_id: str) -> bool:
        """Withdraw a registration, self-made or automatic."""
        user_id = normalize_user_id(user_id)
        if not team_id or not event_id or not user_id:
            return False

        async def operation() -> bool:
            event = await self.store.get(team_id, event_id)
            if not self._accepts_changes(event):
                return False
            if not is_eligible(event, user_id) or not is_registered(event, user_id):
                return False

            apply_attendee_change(
                event,
                registered=event.registered_attendees - {user_id},
                auto_registered=event.auto_registered_attendees - {user_id},
            )
            if not await self.store.replace(event):
                logger.error(f"Withdrawal of {user_id} from event {event_id} was not saved")
                return False
            logger.info(f"User {user_id} unregistered from event {event_id}")
            return await self._propagate(event)

        return await self.retry_policy.run(operation)

    async def get_event_for_user(self, event_id: str, team_id: str, user_id: str) -> EventForUser | None:
        """Load an event with the viewer's registration flags filled in."""
        user_id = normalize_user_id(user_id)
        if not team_id or not event_id or not user_id:
            return None

        event = await self.store.get(team_id, event_id)
        if event is None or event.is_removed:
            return None

        await self._bind_category(event)
        view = EventForUser.model_validate(event.model_dump())
        view.is_mandatory_for_user = (
            user_id in event.mandatory_attendees or user_id in event.auto_registered_attendees
        )
        view.is_registered_for_user = is_registered(event, user_id)
        view.can_user_register = event.audience == EventAudience.PUBLIC or is_eligible(event, user_id)
        return view
