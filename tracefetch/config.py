from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Upstream user API
    USERS_BASE_URL: str = "http://localhost:8080"

    # HTTP
    REQUEST_TIMEOUT: int = 30
    MAX_RETRIES: int = Field(default=3, gt=0)
    BACKOFF_SECONDS: float = Field(default=0.5, ge=0)
    FETCH_DEADLINE_SECONDS: float = Field(default=30.0, gt=0)
    VERIFY_SSL: bool = True
    USER_AGENT: str = "tracefetch/1.0"

    # Tracing
    SERVICE_NAME: str = "api-client"
    TRACING_EXPORTER: str = "console"  # console | none

    # Logging
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False
