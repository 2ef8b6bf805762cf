"""
Application settings loaded from environment variables.
Uses pydantic-settings for validation and .env file support.
"""
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./slotbook.db",
        description="SQLAlchemy connection string (sqlite or postgresql+psycopg2)"
    )
    auto_create_tables: bool = Field(
        default=False,
        description="Create missing tables on application startup"
    )

    # Business calendar
    business_timezone: str = Field(
        default="UTC",
        description="IANA timezone in which working hours and dates are expressed"
    )
    default_working_days: list[int] = Field(
        default=[0, 1, 2, 3, 4, 5],  # Monday - Saturday
        description="Weekdays (0=Monday) used when a provider gives none"
    )
    default_slot_interval_minutes: int = Field(
        default=30,
        gt=0,
        le=240,
        description="Candidate slot granularity when a provider gives none"
    )

    # Booking rules
    min_advance_minutes: int = Field(
        default=120,
        ge=0,
        le=24 * 60,
        description="Minimum lead time for same-day bookings"
    )
    same_day_cutoff_hour: Optional[int] = Field(
        default=None,
        ge=0,
        le=24,
        description="No new same-day bookings once this hour is reached (unset = disabled)"
    )
    initial_reservation_state: Literal["confirmed", "pending"] = Field(
        default="confirmed",
        description="State assigned to newly created reservations"
    )

    # Application
    app_name: str = Field(default="Slotbook", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")


# Global settings instance
settings = Settings()
