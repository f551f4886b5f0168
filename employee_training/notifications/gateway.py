"""Proactive notifications through the Bot Connector REST API.

Messages are delivered into conversations the bot already has with users
(personal chats) and with L&D teams (channels). The references for those
conversations are recorded when the bot is installed and read from the
database here.
"""
import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from employee_training.core.config import settings
from employee_training.core.errors import NotificationError
from employee_training.core.tokens import ClientCredentialsToken
from employee_training.models import TeamConversation, UserConversation
from employee_training.models.event import normalize_user_id

logger = logging.getLogger(__name__)

BOT_TOKEN_TENANT = "botframework.com"
BOT_SCOPE = "https://api.botframework.com/.default"
ADAPTIVE_CARD = "application/vnd.microsoft.card.adaptive"


def to_activity(message: dict[str, Any]) -> dict[str, Any]:
    """Render a notification payload as a message activity with an Adaptive Card."""
    body: list[dict[str, Any]] = [
        {"type": "TextBlock", "text": message.get("title", ""), "weight": "Bolder", "size": "Medium", "wrap": True},
    ]
    if message.get("text"):
        body.append({"type": "TextBlock", "text": message["text"], "wrap": True})
    if message.get("facts"):
        body.append({"type": "FactSet", "facts": message["facts"]})

    card: dict[str, Any] = {
        "type": "AdaptiveCard",
        "$schema": "http://adaptivecards.io/schemas/adaptive-card.json",
        "version": "1.4",
        "body": body,
    }
    if message.get("link"):
        card["actions"] = [{"type": "Action.OpenUrl", "title": "View training", "url": message["link"]}]

    return {
        "type": "message",
        "summary": message.get("title", ""),
        "attachments": [{"contentType": ADAPTIVE_CARD, "content": card}],
    }


class ConversationStore:
    """Conversation references recorded by the bot."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def save_user(self, user_id: str, conversation_id: str, service_url: str) -> UserConversation:
        with Session(self.engine) as session:
            row = UserConversation(
                user_id=normalize_user_id(user_id),
                conversation_id=conversation_id,
                service_url=service_url,
                updated_on=datetime.now(UTC),
            )
            row = session.merge(row)
            session.commit()
            session.refresh(row)
            return row

    def save_team(self, team_id: str, conversation_id: str, service_url: str, name: str | None = None) -> TeamConversation:
        with Session(self.engine) as session:
            row = TeamConversation(
                team_id=team_id,
                conversation_id=conversation_id,
                service_url=service_url,
                name=name,
                updated_on=datetime.now(UTC),
            )
            row = session.merge(row)
            session.commit()
            session.refresh(row)
            return row

    def users(self, user_ids: list[str]) -> dict[str, UserConversation]:
        ids = [normalize_user_id(u) for u in user_ids]
        with Session(self.engine) as session:
            rows = session.exec(select(UserConversation).where(UserConversation.user_id.in_(ids))).all()
            return {row.user_id: row for row in rows}

    def team(self, team_id: str) -> TeamConversation | None:
        with Session(self.engine) as session:
            return session.get(TeamConversation, team_id)


class BotNotificationGateway:
    """Send messages to users and team channels on behalf of the bot.

    Args:
        conversations: Where conversation references are looked up.
        http: Client used for connector and token requests.
        token: Bot token provider; defaults to the bot app credentials.
    """

    def __init__(
        self,
        conversations: ConversationStore,
        http: httpx.AsyncClient,
        token: ClientCredentialsToken | None = None,
    ):
        self.conversations = conversations
        self.http = http
        self.token = token or ClientCredentialsToken(
            tenant=BOT_TOKEN_TENANT,
            client_id=settings.bot_app_id,
            client_secret=settings.bot_app_password,
            scope=BOT_SCOPE,
            http=http,
        )

    async def _headers(self) -> dict[str, str]:
        try:
            return await self.token.headers()
        except httpx.HTTPError as e:
            raise NotificationError(f"Could not obtain a bot token: {e}") from e

    @staticmethod
    def _activities_url(service_url: str, conversation_id: str) -> str:
        return f"{service_url.rstrip('/')}/v3/conversations/{conversation_id}/activities"

    async def send_to_users(self, user_ids: list[str], message: dict[str, Any]) -> None:
        """Send the message to each user's personal chat.

        Users without a recorded conversation are skipped. Delivery is
        attempted for everyone before a failure is reported.
        """
        conversations = self.conversations.users(user_ids)
        missing = len(set(normalize_user_id(u) for u in user_ids)) - len(conversations)
        if missing:
            logger.warning(f"{missing} users have no conversation with the bot and were skipped")
        if not conversations:
            return

        activity = to_activity(message)
        headers = await self._headers()
        failed: list[str] = []
        for user_id, conversation in conversations.items():
            try:
                response = await self.http.post(
                    self._activities_url(conversation.service_url, conversation.conversation_id),
                    json=activity,
                    headers=headers,
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error(f"Failed to notify user {user_id}: {e}")
                failed.append(user_id)

        if failed:
            raise NotificationError(f"Notification '{message.get('kind')}' failed for {len(failed)} users")
        logger.info(f"Sent '{message.get('kind')}' notification to {len(conversations)} users")

    async def send_to_team(
        self,
        team_id: str,
        message: dict[str, Any],
        update_message_id: str | None = None,
    ) -> str | None:
        """Post the message in the team channel, or replace an earlier one."""
        conversation = self.conversations.team(team_id)
        if conversation is None:
            raise NotificationError(f"The bot is not installed in team {team_id}")

        url = self._activities_url(conversation.service_url, conversation.conversation_id)
        activity = to_activity(message)
        headers = await self._headers()
        try:
            if update_message_id:
                response = await self.http.put(f"{url}/{update_message_id}", json=activity, headers=headers)
            else:
                response = await self.http.post(url, json=activity, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Failed to post in team {team_id}: {e}") from e

        if update_message_id:
            return update_message_id
        return response.json().get("id")
