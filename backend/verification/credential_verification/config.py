"""
Configuration for the verification service.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Verification service settings.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Server
    host: str = Field(default="127.0.0.1", description="Listen host", alias="HOST")
    port: int = Field(default=3002, description="Listen port", alias="PORT")
    debug: bool = Field(default=False, description="Enable debug mode (auto-reload)", alias="DEBUG")

    worker_id: Optional[str] = Field(
        default=None,
        description="Worker identity override (defaults to credential-verification-<pid>)",
        alias="WORKER_ID",
    )

    # Upstream issuance service
    issuance_api_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the issuance service",
        alias="ISSUANCE_API_URL",
    )
    issuance_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout for each lookup against the issuance service",
        alias="ISSUANCE_TIMEOUT_SECONDS",
    )

    # CORS
    frontend_host_url: str = Field(
        default="http://localhost:5173",
        description="Allowed cross-origin caller (the browser UI)",
        alias="FRONTEND_HOST_URL",
    )

    @property
    def resolved_worker_id(self) -> str:
        """Worker id for this process."""
        return self.worker_id or f"credential-verification-{os.getpid()}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
