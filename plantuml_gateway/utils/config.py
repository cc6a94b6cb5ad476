"""Gateway configuration.

Values come from `.env` and `PLANTUML_GATEWAY_*` environment variables.
"""
from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from .env and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PLANTUML_GATEWAY_",
        extra="ignore",
    )

    server_port: int = Field(default=8888, ge=1, le=65535)
    java_path: str = ""
    jar_path: str = ""
    request_timeout: float = 30.0
    startup_grace_period: float = 3.0
    ready_marker: str = "Starting PlantUML Picoweb"
    client_timeout: float = 60.0
    warmup_retry: bool = False  # retry once after a fallback-ready start
    log_level: str = "INFO"
    output_dir: str = "outputs"


def get_settings() -> Settings:
    return Settings()


def get_config(key: str, default: Any = None, source: Settings | None = None) -> Any:
    """Look up a single setting by name, falling back to `default`."""
    source = source or settings
    value = getattr(source, key, None)
    if value is None or value == "":
        return default
    return value


settings = Settings()
