"""Configuration management for videocatalog."""

import logging
from pathlib import Path

from pydantic import Field, PositiveInt, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with VIDEOCATALOG_ (e.g. VIDEOCATALOG_DATA_DIR, VIDEOCATALOG_PREVIEW_SIZE).
    """

    model_config = {"env_prefix": "VIDEOCATALOG_"}

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".videocatalog",
        description="Root directory for the catalog database",
    )
    storage_dir: Path | None = Field(
        default=None,
        description="Root directory for uploaded video content (defaults to <data_dir>/uploads)",
    )
    preview_size: PositiveInt = Field(
        default=1024,
        description="Maximum number of bytes returned as a content preview",
    )
    max_upload_size: PositiveInt = Field(
        default=50 * 1024 * 1024,
        description="Maximum size in bytes of an uploaded content file",
    )

    # Pagination
    default_page_size: PositiveInt = 20
    max_page_size: PositiveInt = 100

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    mcp_port: int = 9093

    log_level: str = "INFO"

    @model_validator(mode="after")
    def _default_storage_dir(self) -> "Settings":
        if self.storage_dir is None:
            self.storage_dir = self.data_dir / "uploads"
        return self

    @property
    def db_path(self) -> Path:
        """SQLite database path."""
        return self.data_dir / "videocatalog.db"

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.storage_dir.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging for the CLI and server entry points."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


# Module-level singleton — import this throughout the app
settings = Settings()
