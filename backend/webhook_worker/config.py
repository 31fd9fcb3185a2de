"""
Webhook worker configuration.

Read from the environment or a local ``.env`` file.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WorkerSettings(BaseSettings):
    """Settings for the webhook worker."""

    # Upstream back-office API
    API_URL: str = "http://localhost:8000"
    API_SECRET: str = Field(default="", description="Sent upstream as X-Webhook-Secret")
    FORWARD_TIMEOUT: float = 10.0

    # Optional early signature check; blank leaves verification to the API
    CLERK_WEBHOOK_SECRET: str = ""

    # Per-IP sliding window
    RATE_LIMIT: int = 100
    RATE_LIMIT_WINDOW: float = 60.0

    # Maximum allowed skew of svix-timestamp, in seconds
    MAX_TIMESTAMP_DIFF: int = 300

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


_settings: WorkerSettings | None = None


def get_worker_settings() -> WorkerSettings:
    """Get the worker settings singleton."""
    global _settings
    if _settings is None:
        _settings = WorkerSettings()
    return _settings
