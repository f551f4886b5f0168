"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Employee Training"
    debug: bool = False
    app_base_url: str = "http://localhost:8000"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./employee_training.db"

    # Google Calendar API (organizer account that owns published events)
    google_client_id: str = ""
    google_client_secret: str = ""
    google_refresh_token: str = ""  # Obtained via scripts/get_token.py
    google_calendar_id: str = "primary"
    calendar_time_zone: str = "UTC"
    cancel_event_comment: str = "This training event has been cancelled by the organizing team."

    # Microsoft Graph (group expansion and user profiles)
    graph_tenant_id: str = ""
    graph_client_id: str = ""
    graph_client_secret: str = ""
    graph_base_url: str = "https://graph.microsoft.com/v1.0"

    # Bot Framework (proactive notifications)
    bot_app_id: str = ""
    bot_app_password: str = ""

    # Optimistic-concurrency retry policy
    retry_max_attempts: int = 25
    retry_backoff_ms: int = 250

    # Reminder sweep
    reminder_hour_utc: int = 8


settings = Settings()
