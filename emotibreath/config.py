"""
Configuration for the EmotiBreath service and CLI.

The engine itself reads no environment; only the entry points do.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from ``EMOTIBREATH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="EMOTIBREATH_",
        env_file=".env",
        extra="ignore",
    )

    host: str = Field("0.0.0.0", description="HTTP bind address")
    port: int = Field(8000, description="HTTP port")
    reload: bool = Field(False, description="Reload the server on code changes")
    log_level: str = Field("INFO", description="Minimum log level")
    log_json: bool = Field(False, description="Render logs as JSON lines")
    default_pattern_id: str = Field(
        "coherent", description="Pattern suggested when nothing else matches"
    )
    tick_interval_ms: int = Field(
        100, gt=0, description="How often the CLI pacer ticks and redraws"
    )
    max_summaries: int = Field(
        1000, ge=1, description="Finished sessions kept in memory by the server"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
