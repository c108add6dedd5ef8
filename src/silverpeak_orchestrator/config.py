"""Configuration loading for the Orchestrator client and CLI."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Connection settings loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(
        env_prefix="SILVERPEAK_",
        extra="ignore",
    )

    server: str | None = None
    user: str | None = None
    password: str | None = None
    api_key: str | None = None
    timeout: float = 30.0
    verify_ssl: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env_file(cls, env_file: Path | None = None) -> Settings:
        kwargs: dict[str, Path] = {}
        if env_file is not None:
            kwargs["_env_file"] = env_file
        return cls(**kwargs)
