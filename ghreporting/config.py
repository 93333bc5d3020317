"""Configuration management for GitHub Reporting."""

import re
from typing import Literal

import pytz
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ghreporting.utils import split_csv


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GitHub Authentication
    github_token: str = Field(
        default="",
        description="GitHub Personal Access Token for API operations",
    )

    # Tracked accounts
    github_users: str = Field(
        default="",
        description="Comma-separated list of GitHub logins to report on",
    )
    github_reporting_organizations: str = Field(
        default="",
        description="Comma-separated list of organizations whose repositories are tracked",
    )

    # Reporting window anchor
    github_reporting_day_of_week: int = Field(
        default=4,
        description="ISO day of week the reporting period ends on (1 = Monday, 7 = Sunday)",
        ge=1,
        le=7,
    )
    github_reporting_hours: int = Field(
        default=12,
        description="Hour of day the reporting period ends at",
        ge=0,
        le=23,
    )

    # Schedule
    reporting_enabled: bool = Field(
        default=True,
        description="Run the scheduled weekly refresh",
    )
    timezone: str = Field(
        default="UTC",
        description="Timezone for the reporting window and schedule",
    )

    # GitHub client behaviour
    request_timeout: int = Field(
        default=30,
        description="Timeout for a single GitHub API request in seconds",
        ge=1,
    )
    min_request_delay: float = Field(
        default=0.5,
        description="Minimum delay between GitHub API calls in seconds",
        ge=0.0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format: 'text' for human-readable, 'json' for structured",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone is a valid IANA timezone name."""
        try:
            pytz.timezone(v)
            return v
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Invalid timezone: {v}. Must be a valid IANA timezone name.")

    @field_validator("github_users", "github_reporting_organizations")
    @classmethod
    def validate_logins(cls, v: str) -> str:
        """Validate every entry is a plausible GitHub login."""
        for login in split_csv(v):
            if not re.match(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?$", login):
                raise ValueError(f"Invalid GitHub login: {login}")
        return v

    @model_validator(mode="after")
    def validate_tracked_accounts(self) -> "Settings":
        """Validate there is someone to report on when a token is configured."""
        if self.github_token and not self.users:
            raise ValueError("GITHUB_USERS must list at least one login")
        return self

    @property
    def users(self) -> frozenset[str]:
        """Get the set of tracked logins."""
        return frozenset(split_csv(self.github_users))

    @property
    def organizations(self) -> frozenset[str]:
        """Get the set of tracked organizations."""
        return frozenset(split_csv(self.github_reporting_organizations))


def load_settings() -> Settings:
    """Load and return application settings.

    Returns:
        Settings instance with values from environment.
    """
    return Settings()
