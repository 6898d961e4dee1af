"""Configuration module."""

from .settings import (
    AccessSettings,
    AppSettings,
    EditorSettings,
    MentionSettings,
    NotificationSettings,
    ServiceSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "AccessSettings",
    "AppSettings",
    "EditorSettings",
    "MentionSettings",
    "NotificationSettings",
    "ServiceSettings",
    "clear_settings_cache",
    "get_settings",
]
