from employee_training.models.category import Category, CategoryPayload
from employee_training.models.conversation import TeamConversation, UserConversation
from employee_training.models.event import (
    Event,
    EventAudience,
    EventForUser,
    EventStatus,
    EventType,
)
from employee_training.models.event_record import EventRecord
from employee_training.models.payload import EventPayload, StatusChange
from employee_training.models.result import CalendarEventRef, Outcome
from employee_training.models.search_document import EventSearchDocument
from employee_training.models.selection import SelectedAttendee
from employee_training.models.user import UserProfile

__all__ = [
    "Category",
    "CategoryPayload",
    "Event",
    "EventAudience",
    "EventForUser",
    "EventStatus",
    "EventType",
    "EventRecord",
    "EventPayload",
    "StatusChange",
    "EventSearchDocument",
    "SelectedAttendee",
    "UserProfile",
    "Outcome",
    "CalendarEventRef",
    "UserConversation",
    "TeamConversation",
]
