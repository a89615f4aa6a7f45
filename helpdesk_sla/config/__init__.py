"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-sla", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Business Calendar ==========
    calendar_source: str = Field(
        default="database",
        description="Where business hours and holidays are read from: database or yaml"
    )
    calendar_config_path: Path = Field(
        default=Path("business_calendar.yaml"),
        description="Path to the business calendar YAML file (calendar_source=yaml)"
    )
    watch_calendar_config: bool = Field(
        default=True,
        description="Reload the YAML calendar and clear the SLA cache when the file changes"
    )

    # ========== SLA Calculation ==========
    sla_timezone: str = Field(
        default="Asia/Jakarta",
        description="Operational IANA timezone for business-hours wall-clock times"
    )
    sla_cache_ttl_seconds: int = Field(
        default=30 * 60,
        description="Lifetime of cached business hours and holidays",
        ge=0
    )
    next_business_hour_lookahead_days: int = Field(
        default=14,
        description="Days searched forward for the next business-hours window",
        ge=1,
        le=366
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("calendar_source")
    @classmethod
    def validate_calendar_source(cls, v: str) -> str:
        """Ensure calendar source is supported."""
        allowed = {CalendarSource.DATABASE, CalendarSource.YAML}
        if v not in allowed:
            raise ValueError(f"calendar_source must be one of {allowed}")
        return v

    @field_validator("sla_timezone")
    @classmethod
    def validate_sla_timezone(cls, v: str) -> str:
        """Ensure the timezone is a known IANA name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {v}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# ========== Constants ==========

DEFAULT_TIMEZONE = "Asia/Jakarta"


class CalendarSource(str):
    """Backends for business-hours and holiday configuration."""
    DATABASE = "database"
    YAML = "yaml"


class CacheKind(str):
    """Prefixes for configuration cache keys."""
    BUSINESS_HOURS = "bh"
    HOLIDAYS = "h"


class DayOfWeek(int):
    """Day-of-week numbering used by business-hours windows (Sunday=0)."""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


WEEKDAYS = [
    DayOfWeek.MONDAY, DayOfWeek.TUESDAY, DayOfWeek.WEDNESDAY,
    DayOfWeek.THURSDAY, DayOfWeek.FRIDAY
]


# Global settings instance
settings = get_settings()
