"""
Configuration for the issuance service.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Issuance service settings.

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
    port: int = Field(default=3001, description="Listen port", alias="PORT")
    debug: bool = Field(default=False, description="Enable debug mode (auto-reload)", alias="DEBUG")

    # Worker identity, reported on every issued credential
    worker_id: Optional[str] = Field(
        default=None,
        description="Worker identity override (defaults to credential-issuance-<pid>)",
        alias="WORKER_ID",
    )

    # Storage
    database_url: str = Field(
        default="sqlite:///./data/issuance.db",
        description="SQLAlchemy database URL (sqlite:///... or postgresql://...)",
        alias="DATABASE_URL",
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
        return self.worker_id or f"credential-issuance-{os.getpid()}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
