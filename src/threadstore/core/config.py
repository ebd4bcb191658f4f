"""
Configuration management for threadstore.

Uses pydantic-settings for environment variable binding.
All settings can be overridden via environment variables with THREADSTORE_ prefix.
"""

import logging
import sys
from pathlib import Path
from typing import Literal

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from threadstore.core.types import KeyInfo


class Settings(BaseSettings):
    """Application settings with environment variable binding."""

    model_config = SettingsConfigDict(
        env_prefix="THREADSTORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================
    # Backend
    # ==========================================
    backend: Literal["hub", "memory"] = "hub"
    """Which DatabaseClient to open: the remote Hub or the in-process store."""

    hub_url: str = "http://127.0.0.1:3007"
    request_timeout: float | None = None
    """Seconds before a Hub request is abandoned. None waits forever."""

    # ==========================================
    # Hub Credentials
    # ==========================================
    key_id: str = ""
    key_secret: SecretStr | None = None
    mode: Literal["dev", "prod"] = "dev"
    """dev: API key only. prod: API key plus signed requests."""

    identity: str = ""
    """Public identity the token is issued for."""

    # ==========================================
    # Record Store
    # ==========================================
    thread_name: str = "nasa"
    collection_name: str = "astronauts"

    # ==========================================
    # Schema Seeding
    # ==========================================
    schema_manifest_path: Path = Path("model.json")

    # ==========================================
    # HTTP API
    # ==========================================
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # ==========================================
    # Logging
    # ==========================================
    log_level: str = "INFO"
    log_file: Path | None = None

    # ==========================================
    # Computed Properties
    # ==========================================
    @property
    def key_info(self) -> KeyInfo:
        return KeyInfo(key_id=self.key_id, key_secret=self.key_secret, mode=self.mode)


# Global settings instance
settings = Settings()


def setup_logging(level: str | None = None) -> None:
    """Configure application logging."""
    log_level = level or settings.log_level

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
    ]

    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        handlers=handlers,
    )

    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(f"threadstore.{name}")
