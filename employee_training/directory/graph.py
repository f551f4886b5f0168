"""Microsoft Graph directory: group expansion and user profiles."""
import logging

import httpx

from employee_training.core.config import settings
from employee_training.core.tokens import ClientCredentialsToken
from employee_training.models import UserProfile

logger = logging.getLogger(__name__)

GRAPH_SCOPE = "https://graph.microsoft.com/.default"
USER_FIELDS = "id,displayName,userPrincipalName"

# Graph caps the number of values in an `in` filter.
FILTER_CHUNK_SIZE = 15


def _profile(item: dict) -> UserProfile:
    return UserProfile(
        id=item["id"],
        display_name=item.get("displayName"),
        user_principal_name=item.get("userPrincipalName"),
    )


class GraphDirectory:
    """Group and user lookups against Microsoft Graph with an app-only token.

    Implements both the group expansion and the user directory contracts.
    HTTP errors propagate as `httpx.HTTPStatusError`, except a 404 on a
    single user lookup, which returns None.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token: ClientCredentialsToken | None = None,
        base_url: str | None = None,
    ):
        self.http = http
        self.base_url = (base_url or settings.graph_base_url).rstrip("/")
        self.token = token or ClientCredentialsToken(
            tenant=settings.graph_tenant_id,
            client_id=settings.graph_client_id,
            client_secret=settings.graph_client_secret,
            scope=GRAPH_SCOPE,
            http=http,
        )

    async def _get(self, url: str, params: dict | None = None) -> httpx.Response:
        response = await self.http.get(url, params=params, headers=await self.token.headers())
        response.raise_for_status()
        return response

    async def _get_all(self, url: str, params: dict | None = None) -> list[dict]:
        """Collect every page of a collection by following `@odata.nextLink`."""
        items: list[dict] = []
        while url:
            payload = (await self._get(url, params)).json()
            items.extend(payload.get("value", []))
            url = payload.get("@odata.nextLink")
            # The next link already carries the query.
            params = None
        return items

    async def get_group_members(self, group_id: str) -> list[str]:
        """Ids of every user in the group, including members of nested groups."""
        members = await self._get_all(
            f"{self.base_url}/groups/{group_id}/transitiveMembers/microsoft.graph.user",
            params={"$select": "id", "$top": "999"},
        )
        logger.debug(f"Group {group_id} has {len(members)} transitive user members")
        return [m["id"] for m in members if m.get("id")]

    async def get_users(self, user_ids: list[str]) -> list[UserProfile]:
        unique_ids = list(dict.fromkeys(i for i in user_ids if i))
        profiles: list[UserProfile] = []
        for start in range(0, len(unique_ids), FILTER_CHUNK_SIZE):
            chunk = unique_ids[start:start + FILTER_CHUNK_SIZE]
            quoted = ",".join(f"'{user_id}'" for user_id in chunk)
            items = await self._get_all(
                f"{self.base_url}/users",
                params={"$filter": f"id in ({quoted})", "$select": USER_FIELDS},
            )
            profiles.extend(_profile(item) for item in items)
        return profiles

    async def get_user(self, user_id: str) -> UserProfile | None:
        if not user_id:
            return None
        try:
            response = await self._get(f"{self.base_url}/users/{user_id}", params={"$select": USER_FIELDS})
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info(f"User {user_id} not found in directory")
                return None
            raise
        return _profile(response.json())
