"""Event lifecycle: drafts, publishing, edits, closing, cancelling and export.

Every operation that reads an event, changes it and writes it back runs
under the engine's RetryPolicy. A ConcurrencyConflictError raised by the
store aborts the attempt and the whole closure is re-run from a fresh read,
so side effects that precede the write (calendar calls, team card) can be
repeated on retry. The external calendar is always called before the store
write: an event is never persisted as Active without a calendar entry.
"""
import logging
from datetime import datetime

from employee_training.core.config import settings
from employee_training.core.errors import InvalidEventError, NotificationError
from employee_training.models import (
    Event,
    EventAudience,
    EventStatus,
    Outcome,
    UserProfile,
)
from employee_training.models.event import new_event_id
from employee_training.notifications.messages import (
    auto_registered_message,
    event_cancelled_message,
    event_updated_message,
    reminder_message,
)
from employee_training.workflow.attendees import (
    apply_attendee_change,
    clear_attendees,
    resolve_attendees,
    within_capacity,
)
from employee_training.workflow.base import WorkflowEngine, compute_occurrences
from employee_training.workflow.export import attendee_rows

logger = logging.getLogger(__name__)


def is_valid_status_change(current: EventStatus, requested: EventStatus) -> bool:
    """Drafts may only go Active, Active events may not go back to Draft,
    and Cancelled or Completed events are final.
    """
    if current == EventStatus.DRAFT:
        return requested == EventStatus.ACTIVE
    if current == EventStatus.ACTIVE:
        return requested != EventStatus.DRAFT
    return False


def merge_schedule(event: Event, source: Event) -> Event:
    """Combine the date and time fields of `source` into `event`.

    Start and end become full datetimes (the day of the date fields at the
    clock time of the time fields) and the number of daily occurrences is
    derived from the span.
    """
    start_date, end_date = source.start_date, source.end_date
    if start_date is None or end_date is None:
        raise InvalidEventError("Start and end dates are required to schedule an event")

    if source.start_time is not None:
        start_date = datetime.combine(start_date.date(), source.start_time, tzinfo=start_date.tzinfo)
    if source.end_time is not None:
        end_date = datetime.combine(end_date.date(), source.end_time, tzinfo=end_date.tzinfo)

    event.start_date = start_date
    event.end_date = end_date
    event.start_time = source.start_time
    event.end_time = source.end_time

    occurrences = compute_occurrences(event)
    if occurrences < 1:
        raise InvalidEventError("The end date must not be before the start date")
    event.number_of_occurrences = occurrences
    return event


def map_event_fields(source: Event, destination: Event, *, is_new: bool, now: datetime) -> Event:
    """Copy editable fields from `source` onto `destination`.

    Switching an existing Private event to Public drops every attendee list,
    since eligibility no longer applies. For new events the identity and
    bookkeeping fields are initialized; for existing events identity,
    creation metadata, status and registrations are left untouched.
    """
    if source.audience == EventAudience.PUBLIC and destination.audience != source.audience:
        clear_attendees(destination)
    else:
        destination.is_auto_register = source.is_auto_register
        destination.mandatory_attendees = set(source.mandatory_attendees)
        destination.optional_attendees = set(source.optional_attendees)
        destination.selected_users_and_groups = list(source.selected_users_and_groups)

    destination.audience = source.audience
    destination.name = (source.name or "").strip()
    destination.description = source.description
    destination.category_id = source.category_id
    destination.type = source.type
    destination.venue = source.venue
    destination.meeting_link = source.meeting_link
    destination.photo = source.photo
    destination.selected_color = source.selected_color
    destination.start_date = source.start_date
    destination.start_time = source.start_time
    destination.end_date = source.end_date
    destination.end_time = source.end_time
    destination.maximum_number_of_participants = source.maximum_number_of_participants
    destination.updated_by = source.updated_by or source.created_by
    destination.updated_on = now

    if is_new:
        destination.team_id = source.team_id
        destination.event_id = source.event_id or new_event_id()
        destination.graph_event_id = None
        destination.team_card_activity_id = None
        destination.status = EventStatus.DRAFT
        destination.is_registration_closed = False
        destination.is_removed = False
        destination.created_by = source.created_by
        destination.created_on = now
        apply_attendee_change(destination, registered=set(), auto_registered=set())

    return destination


class EventWorkflow(WorkflowEngine):
    """Lifecycle operations for the L&D team's training events."""

    def __init__(self, *args, cancel_comment: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.cancel_comment = cancel_comment or settings.cancel_event_comment

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    async def create_draft(self, event: Event) -> bool:
        """Save a new event as Draft. No calendar entry and no notifications."""
        if event is None:
            raise InvalidEventError("Event details should be provided")

        draft = map_event_fields(event, Event(), is_new=True, now=self.clock())
        saved = await self.store.insert_or_replace(draft)
        event.event_id = draft.event_id
        logger.info(f"Created draft {draft.event_id} in team {draft.team_id}")
        if saved:
            await self._refresh_index()
        return saved

    async def update_draft(self, event: Event) -> Outcome:
        """Overwrite the editable fields of an existing draft."""
        if event is None or not event.event_id:
            raise InvalidEventError("Event details with an event Id should be provided")

        async def operation() -> Outcome:
            draft = await self.store.get(event.team_id, event.event_id)
            if draft is None or draft.is_removed:
                return Outcome.NOT_FOUND
            if draft.status != EventStatus.DRAFT:
                logger.warning(f"Refusing draft update of event {event.event_id} in status {draft.status.name}")
                return Outcome.FAILED

            map_event_fields(event, draft, is_new=False, now=self.clock())
            saved = await self.store.replace(draft)
            return Outcome.SUCCESS if saved else Outcome.FAILED

        outcome = await self.retry_policy.run(operation)
        if outcome:
            await self._refresh_index()
        return outcome

    async def delete_draft(self, team_id: str, event_id: str) -> Outcome:
        """Soft-delete a draft. Removed drafts stay in storage, hidden from queries."""

        async def operation() -> Outcome:
            draft = await self.store.get(team_id, event_id)
            if draft is None or draft.is_removed:
                return Outcome.NOT_FOUND
            if draft.status != EventStatus.DRAFT:
                logger.warning(f"Refusing to delete event {event_id} in status {draft.status.name}")
                return Outcome.FAILED

            draft.is_removed = True
            draft.updated_on = self.clock()
            saved = await self.store.replace(draft)
            return Outcome.SUCCESS if saved else Outcome.FAILED

        outcome = await self.retry_policy.run(operation)
        if outcome:
            logger.info(f"Deleted draft {event_id} in team {team_id}")
            await self._refresh_index()
        return outcome

    # ------------------------------------------------------------------
    # Publishing and edits
    # ------------------------------------------------------------------

    async def publish(self, event: Event, created_by_name: str | None = None) -> Outcome:
        """Create the calendar entry, announce the event and persist it as Active.

        `event` is either a brand-new event or an existing draft (matched by
        event id). Nothing is persisted unless the calendar entry and the
        team announcement were both created.
        """
        if event is None:
            raise InvalidEventError("Event details should be provided")

        now = self.clock()
        if event.event_id:
            target = await self.store.get(event.team_id, event.event_id)
            if target is None or target.is_removed or target.status != EventStatus.DRAFT:
                return Outcome.NOT_FOUND
            map_event_fields(event, target, is_new=False, now=now)
        else:
            target = map_event_fields(event, Event(), is_new=True, now=now)

        merge_schedule(target, event)
        await resolve_attendees(target, self.groups)
        await self._bind_category(target)
        if not within_capacity(target):
            logger.warning(
                f"Event {target.event_id} has {target.registered_attendees_count} attendees "
                f"for {target.maximum_number_of_participants} seats"
            )
            return Outcome.FAILED

        calendar_event = await self.calendar.create_event(target)
        if calendar_event is None:
            logger.error(f"Calendar entry could not be created for event {target.event_id}")
            return Outcome.FAILED
        target.graph_event_id = calendar_event.id

        try:
            target.team_card_activity_id = await self._post_team_card(target, created_by_name)
        except NotificationError:
            logger.exception(f"Team announcement failed for event {target.event_id}")
            return Outcome.FAILED

        target.status = EventStatus.ACTIVE
        saved = await self.store.insert_or_replace(target)
        if not saved:
            return Outcome.FAILED

        event.event_id = target.event_id
        logger.info(f"Published event {target.event_id} in team {target.team_id}")
        if target.is_auto_register and target.auto_registered_attendees:
            await self._notify_users(sorted(target.auto_registered_attendees), auto_registered_message(target))
        await self._refresh_index()
        return Outcome.SUCCESS

    async def update_active(self, event: Event) -> Outcome:
        """Apply an edit to a published event and propagate it."""
        if event is None or not event.event_id:
            raise InvalidEventError("Event details with an event Id should be provided")

        newly_auto_registered: set[str] = set()
        updated: Event | None = None

        async def operation() -> Outcome:
            nonlocal newly_auto_registered, updated
            current = await self.store.get(event.team_id, event.event_id)
            if current is None or current.is_removed or not current.graph_event_id:
                return Outcome.NOT_FOUND
            if current.status != EventStatus.ACTIVE:
                return Outcome.NOT_FOUND

            previous_auto = set(current.auto_registered_attendees)
            map_event_fields(event, current, is_new=False, now=self.clock())
            merge_schedule(current, event)
            await resolve_attendees(current, self.groups)
            if not within_capacity(current):
                logger.warning(
                    f"Update of event {current.event_id} would seat {current.registered_attendees_count} "
                    f"attendees for {current.maximum_number_of_participants} seats"
                )
                return Outcome.FAILED

            calendar_event = await self.calendar.update_event(current)
            if calendar_event is None:
                logger.error(f"Calendar entry could not be updated for event {current.event_id}")
                return Outcome.FAILED

            saved = await self.store.replace(current)
            newly_auto_registered = current.auto_registered_attendees - previous_auto
            event.etag = current.etag
            updated = current
            return Outcome.SUCCESS if saved else Outcome.FAILED

        outcome = await self.retry_policy.run(operation)
        if not outcome:
            return outcome

        logger.info(f"Updated active event {updated.event_id} in team {updated.team_id}")
        await self._bind_category(updated)
        await self._refresh_team_card(updated)
        existing = sorted(set(updated.attendees()) - newly_auto_registered)
        await self._notify_users(existing, event_updated_message(updated))
        if updated.is_auto_register:
            await self._notify_users(sorted(newly_auto_registered), auto_registered_message(updated))
        await self._refresh_index()
        return outcome

    # ------------------------------------------------------------------
    # Registration window and status
    # ------------------------------------------------------------------

    async def close_registrations(self, team_id: str, event_id: str, user_id: str | None = None) -> bool:
        """Stop accepting registrations on an Active event. Existing registrations are kept."""

        async def operation() -> bool:
            current = await self.store.get(team_id, event_id)
            if current is None or current.is_removed or current.status != EventStatus.ACTIVE:
                return False

            current.is_registration_closed = True
            current.updated_by = user_id or current.updated_by
            current.updated_on = self.clock()
            return await self.store.replace(current)

        closed = await self.retry_policy.run(operation)
        if closed:
            logger.info(f"Closed registrations for event {event_id} in team {team_id}")
            await self._refresh_index()
        return closed

    async def change_status(self, team_id: str, event_id: str, status: EventStatus, user_id: str) -> bool:
        """Move an event to a new status, subject to `is_valid_status_change`.

        Cancelling removes the calendar entry and tells registered users
        before the status change is persisted. An event without a calendar
        entry is never made Active here; drafts are activated by `publish`.
        """

        async def operation() -> bool:
            current = await self.store.get(team_id, event_id)
            if current is None or current.is_removed:
                return False
            if not is_valid_status_change(current.status, status):
                logger.warning(
                    f"Invalid status change for event {event_id}: {current.status.name} -> {status.name}"
                )
                return False
            if status == EventStatus.ACTIVE and not current.graph_event_id:
                logger.warning(f"Event {event_id} has no calendar entry; drafts go Active through publish")
                return False

            if status == EventStatus.CANCELLED:
                cancelled = await self.calendar.cancel_event(
                    current.graph_event_id, current.created_by, self.cancel_comment
                )
                if not cancelled:
                    logger.error(f"Calendar entry could not be cancelled for event {event_id}")
                    return False
                if current.registered_attendees_count > 0:
                    await self._bind_category(current)
                    await self._notify_users(current.attendees(), event_cancelled_message(current))

            current.status = status
            current.updated_by = user_id
            current.updated_on = self.clock()
            return await self.store.replace(current)

        changed = await self.retry_policy.run(operation)
        if changed:
            logger.info(f"Event {event_id} in team {team_id} moved to {status.name}")
            await self._refresh_index()
        return changed

    # ------------------------------------------------------------------
    # Attendees
    # ------------------------------------------------------------------

    async def export_attendees(self, team_id: str, event_id: str) -> list[list[str]] | None:
        """Rows of the attendee export, or None if the event does not exist."""
        event = await self.store.get(team_id, event_id)
        if event is None or event.is_removed:
            return None

        await self._bind_category(event)
        profiles: list[UserProfile] = []
        if event.registered_attendees_count > 0:
            profiles = await self.users.get_users(event.attendees())
        return attendee_rows(event, profiles)

    async def send_reminder(self, team_id: str, event_id: str, period: str = "daily") -> None:
        """Remind every registered attendee about the event. No-op without attendees."""
        event = await self.store.get(team_id, event_id)
        if event is None or event.is_removed or event.registered_attendees_count == 0:
            return

        await self._bind_category(event)
        await self.notifications.send_to_users(event.attendees(), reminder_message([event], period))
        logger.info(f"Sent reminder for event {event_id} to {event.registered_attendees_count} attendees")
