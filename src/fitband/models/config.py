from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application-wide settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="FITBAND_",
        extra="ignore",
    )

    api_base_url: str = "http://localhost:3000"
    ws_url: str = "http://localhost:3001"
    ws_path: str = "/ws"
    # Preferred low-latency transport first, long-polling fallback second.
    ws_transports: list[str] = Field(default_factory=lambda: ["websocket", "polling"])
    connect_timeout: float = Field(default=10.0, gt=0)
    access_token: str | None = None
    profile: str = "default"
    poll_interval: float = Field(default=5.0, gt=0)
    simulate_interval_ms: int = Field(default=3000, ge=1000, le=10000)
