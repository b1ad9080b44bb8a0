"""Configuration settings for arbor."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_arbor_home() -> Path:
    """Data directory: ``ARBOR_DATA_DIR`` if set, otherwise ``~/.arbor``."""
    data_dir = os.environ.get("ARBOR_DATA_DIR")
    if data_dir:
        return Path(data_dir).expanduser()
    return Path.home() / ".arbor"


class Settings(BaseSettings):
    """Application settings loaded from environment (``ARBOR_*``) or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="ARBOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra env vars not in model
    )

    data_dir: Path | None = None
    db_name: str = "document.db"
    # Identifies this installation to scripts that should run on one instance only
    instance_name: str | None = None

    log_level: str = "INFO"
    # Quiet period before batched script log messages are pushed to clients
    log_debounce_seconds: float = 0.1

    # Websocket/HTTP server
    host: str = "127.0.0.1"
    port: int = 37840

    def resolve_data_dir(self) -> Path:
        return Path(self.data_dir).expanduser() if self.data_dir else get_arbor_home()

    @property
    def db_path(self) -> Path:
        return self.resolve_data_dir() / self.db_name


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
