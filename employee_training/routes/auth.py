"""Integration credential status routes."""
from fastapi import APIRouter

from employee_training.calendar.client import has_valid_credentials
from employee_training.core.config import settings

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/status")
async def auth_status():
    """
    Report which integrations have credentials configured.

    The calendar needs an organizer refresh token; Graph and the bot need
    their application credentials. Nothing is validated against the remote
    services here.
    """
    calendar = has_valid_credentials()
    graph = bool(settings.graph_tenant_id and settings.graph_client_id and settings.graph_client_secret)
    bot = bool(settings.bot_app_id and settings.bot_app_password)
    return {
        "authenticated": calendar and graph and bot,
        "calendar": calendar,
        "graph": graph,
        "bot": bot,
        "message": (
            "Credentials configured"
            if calendar
            else "Run 'python scripts/get_token.py' to authorize the organizer calendar"
        ),
    }
