"""
Configuration and settings for the user management API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    app_version: str = Field(default="1.0.0")

    # Database (Postgres expected). Unset means the in-memory store.
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # HTTP server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Browser dashboard assets, served at "/" when the directory exists.
    static_dir: str = Field(default="public")

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
