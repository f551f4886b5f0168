"""Result types returned by workflow operations."""

from enum import Enum

from sqlmodel import SQLModel


class Outcome(str, Enum):
    """Tri-state result of an operation on an existing event.

    SUCCESS: the operation was carried out.
    FAILED: the event exists but the operation was declined by a business
        rule or an upstream dependency (calendar, notification) failed.
    NOT_FOUND: the event does not exist, is soft-deleted, or is not in a
        state the operation can address at all.
    """
    SUCCESS = "success"
    FAILED = "failed"
    NOT_FOUND = "not_found"

    def __bool__(self) -> bool:
        return self is Outcome.SUCCESS


class CalendarEventRef(SQLModel):
    """Reference to an entry created in the external calendar."""
    id: str
    web_link: str | None = None
