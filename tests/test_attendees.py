"""Tests for attendee resolution and bookkeeping."""

from employee_training.models import Event, EventAudience, SelectedAttendee
from employee_training.workflow.attendees import (
    apply_attendee_change,
    apply_resolution,
    clear_attendees,
    has_free_seat,
    is_eligible,
    is_registered,
    resolve_attendees,
    resolve_selection,
)


def user(user_id: str, mandatory: bool) -> SelectedAttendee:
    return SelectedAttendee(id=user_id, is_group=False, is_mandatory=mandatory)


def group(group_id: str, mandatory: bool) -> SelectedAttendee:
    return SelectedAttendee(id=group_id, is_group=True, is_mandatory=mandatory)


class TestApplyAttendeeChange:
    """Tests for the single place attendee sets change."""

    def test_count_follows_sets(self, check_invariants):
        event = Event(maximum_number_of_participants=5)
        apply_attendee_change(event, registered={"a", "b"}, auto_registered={"c"})
        assert event.registered_attendees_count == 3
        check_invariants(event)

    def test_self_registration_wins_over_auto(self):
        """A user in both sets is kept as self-registered only."""
        event = Event(maximum_number_of_participants=5)
        apply_attendee_change(event, registered={"a"}, auto_registered={"a", "b"})
        assert event.registered_attendees == {"a"}
        assert event.auto_registered_attendees == {"b"}
        assert event.registered_attendees_count == 2

    def test_clear_attendees(self):
        event = Event(
            audience=EventAudience.PRIVATE,
            is_auto_register=True,
            mandatory_attendees={"a"},
            optional_attendees={"b"},
            selected_users_and_groups=[user("a", True)],
        )
        apply_attendee_change(event, registered={"b"}, auto_registered={"a"})

        clear_attendees(event)

        assert not event.mandatory_attendees
        assert not event.optional_attendees
        assert not event.registered_attendees
        assert not event.auto_registered_attendees
        assert event.selected_users_and_groups == []
        assert event.registered_attendees_count == 0
        assert event.is_auto_register is False


class TestMembership:
    """Tests for eligibility and registration lookups."""

    def test_public_event_is_open_to_everyone(self):
        assert is_eligible(Event(audience=EventAudience.PUBLIC), "anyone")

    def test_private_event_requires_listing(self):
        event = Event(audience=EventAudience.PRIVATE, mandatory_attendees={"m"}, optional_attendees={"o"})
        assert is_eligible(event, "m")
        assert is_eligible(event, "O")
        assert not is_eligible(event, "stranger")

    def test_is_registered_checks_both_sets(self):
        event = Event(registered_attendees={"a"}, auto_registered_attendees={"b"})
        assert is_registered(event, "a")
        assert is_registered(event, "B ")
        assert not is_registered(event, "c")

    def test_has_free_seat_boundary(self):
        event = Event(maximum_number_of_participants=2)
        apply_attendee_change(event, registered={"a"})
        assert has_free_seat(event)
        apply_attendee_change(event, registered={"a", "b"})
        assert not has_free_seat(event)


class TestResolveSelection:
    """Tests for turning a user/group selection into attendee lists."""

    async def test_direct_optional_beats_mandatory_group(self, directory):
        """A user picked directly as optional stays optional despite a mandatory group."""
        directory.groups["g-mandatory"] = ["alice", "bob"]

        mandatory, optional = await resolve_selection(
            [group("g-mandatory", True), user("alice", False)], directory
        )

        assert "alice" in optional
        assert "alice" not in mandatory
        assert mandatory == {"bob"}

    async def test_direct_mandatory_beats_optional_group(self, directory):
        """A user picked directly as mandatory stays mandatory despite an optional group."""
        directory.groups["g-optional"] = ["alice", "bob"]

        mandatory, optional = await resolve_selection(
            [group("g-optional", False), user("alice", True)], directory
        )

        assert mandatory == {"alice"}
        assert optional == {"bob"}

    async def test_mandatory_wins_between_groups(self, directory):
        directory.groups["g1"] = ["carol"]
        directory.groups["g2"] = ["carol", "dave"]

        mandatory, optional = await resolve_selection([group("g1", True), group("g2", False)], directory)

        assert mandatory == {"carol"}
        assert optional == {"dave"}

    async def test_ids_are_normalized_and_deduplicated(self, directory):
        directory.groups["g"] = ["Erin", "erin "]

        mandatory, optional = await resolve_selection([group("g", True), user(" ERIN", True)], directory)

        assert mandatory == {"erin"}
        assert optional == set()

    async def test_empty_selection(self, directory):
        assert await resolve_selection([], directory) == (set(), set())


class TestApplyResolution:
    """Tests for reconciling registrations with new attendee lists."""

    def test_auto_register_adds_unregistered_mandatory_users(self, check_invariants):
        event = Event(audience=EventAudience.PRIVATE, is_auto_register=True, maximum_number_of_participants=10)
        apply_attendee_change(event, registered={"a"})

        apply_resolution(event, mandatory={"a", "b", "c"}, optional={"d"})

        assert event.registered_attendees == {"a"}
        assert event.auto_registered_attendees == {"b", "c"}
        check_invariants(event)

    def test_ineligible_registrants_are_dropped(self):
        event = Event(audience=EventAudience.PRIVATE, maximum_number_of_participants=10)
        apply_attendee_change(event, registered={"a", "gone"})

        apply_resolution(event, mandatory=set(), optional={"a"})

        assert event.registered_attendees == {"a"}
        assert event.registered_attendees_count == 1

    def test_without_auto_register_keeps_only_still_mandatory(self):
        event = Event(audience=EventAudience.PRIVATE, is_auto_register=False, maximum_number_of_participants=10)
        apply_attendee_change(event, auto_registered={"a", "b"})

        apply_resolution(event, mandatory={"a"}, optional={"b"})

        assert event.auto_registered_attendees == {"a"}

    async def test_public_events_are_left_untouched(self, directory):
        event = Event(audience=EventAudience.PUBLIC, selected_users_and_groups=[user("x", True)])
        await resolve_attendees(event, directory)
        assert event.mandatory_attendees == set()

    async def test_private_event_without_selection_uses_existing_lists(self, directory):
        event = Event(
            audience=EventAudience.PRIVATE,
            is_auto_register=True,
            maximum_number_of_participants=10,
            mandatory_attendees={"m"},
            optional_attendees={"o"},
        )
        await resolve_attendees(event, directory)
        assert event.auto_registered_attendees == {"m"}
