"""
Application configuration module.

Provides centralized, environment-safe configuration management
with sensible defaults for local development.
"""

import logging
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    All settings can be overridden via environment variables
    or a local ``.env`` file.
    """

    # Application metadata
    APP_NAME: str = "Admin Back-Office API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = Field(default="console", description="json or console")

    # Database configuration
    DATABASE_URL: str = "sqlite:///./backoffice.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # CORS configuration
    CORS_ORIGINS: str = "http://localhost:5173"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_METHODS: str = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
    CORS_HEADERS: str = "Authorization,Content-Type,X-API-Version,X-Request-ID"

    # Clerk configuration
    CLERK_API_URL: str = "https://api.clerk.com/v1"
    CLERK_SECRET_KEY: str = ""
    CLERK_JWT_KEY: str = ""
    CLERK_AUTHORIZED_PARTIES: str = ""
    CLERK_WEBHOOK_SECRET: str = ""
    CLERK_REQUEST_TIMEOUT: float = 10.0

    # Shared secret expected from the webhook worker (optional)
    WEBHOOK_FORWARD_SECRET: str = ""

    # Sync configuration
    SYNC_MAX_RETRIES: int = 3
    SYNC_RETRY_DELAY: float = 1.0

    # API versioning
    API_VERSION: str = "1"
    SUPPORTED_API_VERSIONS: str = "1"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @staticmethod
    def _split(value: str) -> List[str]:
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def cors_origins_list(self) -> List[str]:
        return self._split(self.CORS_ORIGINS)

    @property
    def cors_methods_list(self) -> List[str]:
        return self._split(self.CORS_METHODS)

    @property
    def cors_headers_list(self) -> List[str]:
        return self._split(self.CORS_HEADERS)

    @property
    def authorized_parties_list(self) -> List[str]:
        return self._split(self.CLERK_AUTHORIZED_PARTIES)

    @property
    def supported_api_versions_list(self) -> List[str]:
        return self._split(self.SUPPORTED_API_VERSIONS)

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        logger.info(
            "Settings loaded: app_name=%s, environment=%s",
            _settings.APP_NAME,
            _settings.ENVIRONMENT,
        )
    return _settings


settings = get_settings()
