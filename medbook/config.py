"""Configuration management for MedBook."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./medbook.db",
        description="Async SQLAlchemy DSN (postgresql+psycopg:// in production)",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)
    api_key: str = Field(
        default="",
        description="API key for authenticating requests",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins",
    )

    # Booking policy
    cancel_window_hours: float = Field(
        default=2,
        description="Minimum hours before start at which an appointment may still be cancelled",
    )
    reschedule_window_hours: float = Field(
        default=24,
        description="Minimum hours before the original start at which a reschedule is allowed",
    )
    week_days: int = Field(default=7, description="Days covered by the week availability rollup")

    # Schedule editor bounds
    min_slot_duration: int = Field(default=10, ge=1)
    max_slot_duration: int = Field(default=120, ge=1)

    # Debug
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode (exposes error details in responses)",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
