"""OAuth2 client-credentials tokens for Microsoft Graph and the Bot Connector."""
import logging
from datetime import UTC, datetime, timedelta

import httpx

logger = logging.getLogger(__name__)

LOGIN_URL = "https://login.microsoftonline.com"

# Tokens are renewed this long before they actually expire.
EXPIRY_MARGIN = timedelta(seconds=60)


class ClientCredentialsToken:
    """Caches an app-only access token and renews it when it nears expiry.

    Args:
        tenant: Directory tenant id, or "botframework.com" for the bot.
        client_id: Application id.
        client_secret: Application secret.
        scope: Resource scope, e.g. "https://graph.microsoft.com/.default".
        http: Client used for the token request.
    """

    def __init__(self, tenant: str, client_id: str, client_secret: str, scope: str, http: httpx.AsyncClient):
        self.token_url = f"{LOGIN_URL}/{tenant}/oauth2/v2.0/token"
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.http = http
        self._access_token: str | None = None
        self._expires_at: datetime | None = None

    async def get(self) -> str:
        if self._access_token and self._expires_at and datetime.now(UTC) < self._expires_at:
            return self._access_token

        response = await self.http.post(
            self.token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": self.scope,
            },
        )
        response.raise_for_status()
        payload = response.json()

        self._access_token = payload["access_token"]
        expires_in = int(payload.get("expires_in", 3600))
        self._expires_at = datetime.now(UTC) + timedelta(seconds=expires_in) - EXPIRY_MARGIN
        logger.info(f"Obtained access token for {self.scope}")
        return self._access_token

    async def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self.get()}"}
