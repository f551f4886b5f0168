"""Stored bot conversation references used for proactive notifications.

When the bot is installed for a user or in a team channel, the bot layer
records where to reach them. The notification gateway reads these rows to
address proactive messages.
"""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class UserConversation(SQLModel, table=True):
    """Personal conversation between the bot and one user.

    Attributes:
        user_id: Directory object id of the user (normalized).
        conversation_id: Bot Framework conversation id of the 1:1 chat.
        service_url: Regional Bot Connector endpoint for the conversation.
    """
    user_id: str = Field(primary_key=True)
    conversation_id: str
    service_url: str
    updated_on: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TeamConversation(SQLModel, table=True):
    """Channel where an L&D team receives event announcements.

    Attributes:
        team_id: Id of the L&D team.
        conversation_id: Bot Framework conversation id of the channel.
        service_url: Regional Bot Connector endpoint for the conversation.
        name: Team display name.
    """
    team_id: str = Field(primary_key=True)
    conversation_id: str
    service_url: str
    name: str | None = None
    updated_on: datetime = Field(default_factory=lambda: datetime.now(UTC))
