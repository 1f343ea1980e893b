"""
Environment settings for the fleet core.

Loads connection overrides from environment variables (or a ``.env`` file)
using Pydantic settings. Values here take precedence over the YAML config.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # Config file
    FLEETWATCH_CONFIG: Optional[str] = None

    # Redis connection; REDIS_URL wins over the discrete fields
    REDIS_URL: Optional[str] = None
    REDIS_HOST: Optional[str] = None
    REDIS_PORT: int = Field(6379, ge=1, le=65535)
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = Field(0, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    def redis_url(self) -> Optional[str]:
        """URL from the environment, composed from REDIS_HOST and friends if needed."""
        if self.REDIS_URL and self.REDIS_URL.strip():
            return self.REDIS_URL.strip()
        if not self.REDIS_HOST or not self.REDIS_HOST.strip():
            return None
        auth = f":{quote(self.REDIS_PASSWORD, safe='')}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST.strip()}:{self.REDIS_PORT}/{self.REDIS_DB}"

    def resolve_backend_url(self, configured: Optional[str]) -> Optional[str]:
        return self.redis_url() or configured


__all__ = ["Settings"]
