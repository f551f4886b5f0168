"""Attendee resolution and bookkeeping shared by both workflow engines.

All changes to the registered and auto-registered sets go through
`apply_attendee_change`, which keeps the two sets disjoint and recomputes
`registered_attendees_count` from them.
"""
import logging

from employee_training.models import Event, EventAudience, SelectedAttendee
from employee_training.models.event import normalize_user_id
from employee_training.workflow.gateways import GroupDirectory

logger = logging.getLogger(__name__)


def apply_attendee_change(
    event: Event,
    *,
    registered: set[str] | None = None,
    auto_registered: set[str] | None = None,
) -> Event:
    """Replace one or both registration sets and resync the counter.

    A user present in both sets is kept as self-registered only.
    """
    if registered is not None:
        event.registered_attendees = set(registered)
    if auto_registered is not None:
        event.auto_registered_attendees = set(auto_registered)

    event.auto_registered_attendees -= event.registered_attendees
    event.registered_attendees_count = len(event.registered_attendees) + len(
        event.auto_registered_attendees
    )
    return event


def clear_attendees(event: Event) -> Event:
    """Drop every attendee list and disable auto-registration."""
    event.mandatory_attendees = set()
    event.optional_attendees = set()
    event.selected_users_and_groups = []
    event.is_auto_register = False
    return apply_attendee_change(event, registered=set(), auto_registered=set())


def is_registered(event: Event, user_id: str) -> bool:
    user_id = normalize_user_id(user_id)
    return user_id in event.registered_attendees or user_id in event.auto_registered_attendees


def is_eligible(event: Event, user_id: str) -> bool:
    """Whether the user may register: anyone for public events, listed users otherwise."""
    if event.audience != EventAudience.PRIVATE:
        return True
    user_id = normalize_user_id(user_id)
    return user_id in event.mandatory_attendees or user_id in event.optional_attendees


def has_free_seat(event: Event) -> bool:
    return event.registered_attendees_count < event.maximum_number_of_participants


def within_capacity(event: Event) -> bool:
    return 0 <= event.registered_attendees_count <= event.maximum_number_of_participants


async def resolve_selection(
    selection: list[SelectedAttendee],
    groups: GroupDirectory,
) -> tuple[set[str], set[str]]:
    """
    Turn the organizer's user/group selection into final attendee sets.

    Groups are expanded into their members, each member inheriting the
    group's mandatory/optional flag. Conflicts are settled as follows:

        1. A user picked directly keeps the direct flag, whatever the flag
           of any group they also belong to.
        2. Otherwise mandatory beats optional.

    Returns:
        (mandatory, optional) as disjoint sets of normalized user ids.
    """
    user_mandatory: set[str] = set()
    user_optional: set[str] = set()
    group_mandatory: set[str] = set()
    group_optional: set[str] = set()

    for entry in selection or []:
        entry_id = normalize_user_id(entry.id) if entry else ""
        if not entry_id:
            continue

        if entry.is_group:
            members = await groups.get_group_members(entry.id) or []
            member_ids = {normalize_user_id(m) for m in members if normalize_user_id(m)}
            logger.debug(f"Expanded group {entry.id} into {len(member_ids)} members")
            if entry.is_mandatory:
                group_mandatory |= member_ids
            else:
                group_optional |= member_ids
        elif entry.is_mandatory:
            user_mandatory.add(entry_id)
        else:
            user_optional.add(entry_id)

    # Mandatory wins within the same kind of selection.
    user_optional -= user_mandatory
    group_optional -= group_mandatory

    # A direct pick overrides the flag inherited from a group.
    group_optional -= user_mandatory
    group_mandatory -= user_optional

    mandatory = group_mandatory | user_mandatory
    optional = (group_optional | user_optional) - mandatory
    return mandatory, optional


def apply_resolution(event: Event, mandatory: set[str], optional: set[str]) -> Event:
    """
    Install eligibility lists on a private event and reconcile registrations.

    Self-registered users who are no longer eligible are dropped. With
    auto-registration enabled every mandatory user who has not registered
    themselves becomes auto-registered; without it, previously
    auto-registered users are kept only while they remain mandatory.
    """
    event.mandatory_attendees = set(mandatory)
    event.optional_attendees = set(optional) - event.mandatory_attendees

    eligible = event.mandatory_attendees | event.optional_attendees
    registered = event.registered_attendees & eligible

    if event.is_auto_register:
        auto_registered = event.mandatory_attendees - registered
    else:
        auto_registered = event.auto_registered_attendees & event.mandatory_attendees

    return apply_attendee_change(event, registered=registered, auto_registered=auto_registered)


async def resolve_attendees(event: Event, groups: GroupDirectory) -> Event:
    """Recompute attendee sets for a private event; public events are left untouched."""
    if event.audience != EventAudience.PRIVATE:
        return event

    if event.selected_users_and_groups:
        mandatory, optional = await resolve_selection(event.selected_users_and_groups, groups)
    else:
        mandatory, optional = event.mandatory_attendees, event.optional_attendees

    return apply_resolution(event, mandatory, optional)
