"""Routes the bot calls when it is installed for a user or in a team."""
from fastapi import APIRouter, Depends
from sqlmodel import SQLModel

from employee_training.core.dependencies import get_conversations
from employee_training.models import TeamConversation, UserConversation
from employee_training.notifications.gateway import ConversationStore

router = APIRouter(prefix="/conversations", tags=["conversations"])


class ConversationReference(SQLModel):
    conversation_id: str
    service_url: str
    name: str | None = None


@router.put("/users/{user_id}", response_model=UserConversation)
async def save_user_conversation(
    user_id: str,
    reference: ConversationReference,
    conversations: ConversationStore = Depends(get_conversations),
):
    """Record the personal chat used for a user's notifications."""
    return conversations.save_user(user_id, reference.conversation_id, reference.service_url)


@router.put("/teams/{team_id}", response_model=TeamConversation)
async def save_team_conversation(
    team_id: str,
    reference: ConversationReference,
    conversations: ConversationStore = Depends(get_conversations),
):
    """Record the channel where a team's event announcements are posted."""
    return conversations.save_team(team_id, reference.conversation_id, reference.service_url, reference.name)
