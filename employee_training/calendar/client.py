"""Google Calendar API client for the organizer account that owns training events."""
import logging

from google.auth.exceptions import RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from employee_training.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_URI = "https://oauth2.googleapis.com/token"

# Events are created, edited and cancelled on the organizer's calendar.
SCOPES = ["https://www.googleapis.com/auth/calendar.events"]

_credentials: Credentials | None = None
_service = None
_service_credentials: Credentials | None = None


def has_valid_credentials() -> bool:
    """Whether an organizer refresh token is configured."""
    return bool(settings.google_refresh_token)


def get_credentials() -> Credentials | None:
    """Organizer credentials built from the configured refresh token.

    The access token is refreshed whenever it is missing or expired.
    Returns None if no refresh token is configured or the refresh fails.
    """
    global _credentials

    if not has_valid_credentials():
        logger.warning("No GOOGLE_REFRESH_TOKEN configured, calendar calls are disabled")
        return None

    if _credentials is None:
        _credentials = Credentials(
            token=None,
            refresh_token=settings.google_refresh_token,
            token_uri=TOKEN_URI,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            scopes=SCOPES,
        )

    if not _credentials.valid:
        try:
            _credentials.refresh(Request())
            logger.info("Refreshed organizer calendar credentials")
        except RefreshError as e:
            logger.error(f"Failed to refresh organizer credentials: {e}")
            _credentials = None
            return None

    return _credentials


def get_calendar_service():
    """Authenticated Calendar v3 service, rebuilt when credentials change."""
    global _service, _service_credentials

    creds = get_credentials()
    if creds is None:
        raise RuntimeError(
            "No valid calendar credentials. Run 'python scripts/get_token.py' to authorize the organizer account."
        )

    if _service is None or _service_credentials is not creds:
        _service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        _service_credentials = creds
    return _service
