"""Configuration package."""

from finboo.config.settings import (
    AppSettings,
    FollowUpSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FollowUpSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
