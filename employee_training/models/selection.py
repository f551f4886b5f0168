"""Organizer's user/group picker selection for private events."""

from sqlmodel import SQLModel


class SelectedAttendee(SQLModel):
    """One entry picked by the organizer.

    Attributes:
        id: Directory object id of the user or group.
        is_group: True if `id` names a group whose members must be expanded.
        is_mandatory: True if the user (or every member of the group) is
            required to attend; False if merely invited.
        display_name: Name shown in the picker, kept for re-editing.
    """
    id: str
    is_group: bool = False
    is_mandatory: bool = False
    display_name: str | None = None
