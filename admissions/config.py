"""
Configuration management for the admissions cleaning pipeline.

Uses pydantic-settings for type-safe configuration with environment variable support.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    url: str = "sqlite:///./data/processed/admissions.db"


class PipelineSettings(BaseSettings):
    """Cleaning pipeline settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Directories
    data_raw_dir: Path = Field(default=Path("./data/raw"))
    data_processed_dir: Path = Field(default=Path("./data/processed"))

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None    # rotating, gzip-compressed when set
    log_rotation: str = "10 MB"
    log_retention: str = "1 week"

    # Identity and normalization
    age_tolerance: int = 6          # years either side
    billing_places: int = 2

    # Reporting
    readmission_window_days: int = 30

    # What to do with rows that fail to parse
    on_malformed: Literal["reject", "fail"] = "reject"

    @field_validator("data_raw_dir", "data_processed_dir", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert string to Path and ensure directory exists."""
        path = Path(v)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("age_tolerance", "billing_places", "readmission_window_days")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


class Settings(BaseSettings):
    """Main settings class that combines all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience alias for quick access
settings = get_settings()
