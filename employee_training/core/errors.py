"""Exception types shared by the workflow engines and their collaborators.

Business-rule declines (capacity reached, registrations closed, invalid
status transition, ...) are never raised; they are returned as results.
Only the conditions below travel as exceptions.
"""


class TrainingEventsError(Exception):
    """Base class for application errors."""


class InvalidEventError(TrainingEventsError, ValueError):
    """Malformed event payload or missing identifier. Never retried."""


class ConcurrencyConflictError(TrainingEventsError):
    """A conditional write lost against a newer version of the record.

    Raised by the event store when the etag presented with a replace no
    longer matches the stored version. The retry policy treats this as
    retriable.
    """

    def __init__(self, team_id: str, event_id: str, etag: int | None = None):
        self.team_id = team_id
        self.event_id = event_id
        self.etag = etag
        super().__init__(
            f"Event {event_id} in team {team_id} was modified concurrently (etag={etag})"
        )


class NotificationError(TrainingEventsError):
    """Delivering a message through the bot connector failed."""
