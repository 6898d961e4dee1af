"""Application settings using Pydantic."""

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.policy import AccessPolicy


def _split(value: str) -> list[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


class ServiceSettings(BaseSettings):
    """Collaboration backend configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="THREADLINE_SERVICE_",
        extra="ignore",
    )

    # REST root; in-memory backend when unset
    base_url: Optional[str] = Field(default=None)
    api_key: Optional[SecretStr] = Field(default=None)
    timeout: float = Field(default=10.0, gt=0)


class MentionSettings(BaseSettings):
    """Mention parsing and dispatch configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="THREADLINE_MENTION_",
        extra="ignore",
    )

    trigger: str = Field(default="@", min_length=1, max_length=1)
    preview_length: int = Field(default=100, ge=1)
    suggestion_limit: int = Field(default=5, ge=1)


class NotificationSettings(BaseSettings):
    """Notification polling configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="THREADLINE_NOTIFICATION_",
        extra="ignore",
    )

    poll_interval_seconds: float = Field(default=30.0, gt=0)
    fetch_limit: int = Field(default=50, ge=1)


class EditorSettings(BaseSettings):
    """Rich text editor configuration."""

    model_config = SettingsConfigDict(env_prefix="THREADLINE_EDITOR_", extra="ignore")

    history_limit: int = Field(default=100, ge=1)


class AccessSettings(BaseSettings):
    """Access control configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="THREADLINE_ACCESS_",
        extra="ignore",
    )

    # Comma-separated lists
    admin_emails: str = Field(default="")
    readonly_emails: str = Field(default="")
    allowed_signup_domains: str = Field(default="")

    def get_admin_emails(self) -> list[str]:
        return _split(self.admin_emails)

    def get_readonly_emails(self) -> list[str]:
        return _split(self.readonly_emails)

    def get_allowed_signup_domains(self) -> list[str]:
        return _split(self.allowed_signup_domains)

    def to_policy(self) -> AccessPolicy:
        """Build the access policy handed to components."""
        return AccessPolicy.from_lists(
            admin_emails=self.get_admin_emails(),
            readonly_emails=self.get_readonly_emails(),
            allowed_signup_domains=self.get_allowed_signup_domains(),
        )


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="THREADLINE_",
        extra="ignore",
    )

    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    @property
    def service(self) -> ServiceSettings:
        return ServiceSettings()

    @property
    def mention(self) -> MentionSettings:
        return MentionSettings()

    @property
    def notification(self) -> NotificationSettings:
        return NotificationSettings()

    @property
    def editor(self) -> EditorSettings:
        return EditorSettings()

    @property
    def access(self) -> AccessSettings:
        return AccessSettings()


@lru_cache
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
