"""
Configuration Management for Finboo

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine itself is pure; only the wording it produces and the retry
policy of the conversation flow are configurable.
"""

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FollowUpSettings(BaseSettings):
    """Follow-up engine and conversation flow configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FOLLOWUP_",
        extra="ignore"
    )

    assistant_name: str = Field(
        default="Finboo",
        min_length=1,
        description="Name the assistant uses for itself in guidance messages"
    )

    # Interpreter transport retries (the engine never retries)
    interpreter_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a transport-level interpreter failure"
    )
    retry_wait_min_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Minimum backoff between attempts"
    )
    retry_wait_max_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Maximum backoff between attempts"
    )

    @model_validator(mode='after')
    def validate_backoff(self) -> 'FollowUpSettings':
        if self.retry_wait_max_seconds < self.retry_wait_min_seconds:
            raise ValueError("retry_wait_max_seconds cannot be below retry_wait_min_seconds")
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def follow_up(self) -> FollowUpSettings:
        return FollowUpSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.follow_up
        results["follow_up"] = True
    except Exception as e:
        results["follow_up"] = False
        results["follow_up_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
