"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Notification dispatch configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    queue_batch_size: int = Field(
        default=100, gt=0, description="Maximum notifications popped per dispatch batch"
    )
    queue_max_concurrent_batches: int = Field(
        default=5, gt=0, description="Upper bound of batches allowed in flight"
    )
    queue_retry_attempts: int = Field(
        default=3, ge=0, description="Retries granted to a notification before it is dropped"
    )
    queue_retry_delay_seconds: float = Field(
        default=1.0, ge=0, description="Wait applied while the minute bucket is exhausted"
    )
    queue_rate_limit_per_minute: int = Field(
        default=1000, gt=0, description="Provider calls allowed per fixed one-minute bucket"
    )
    queue_max_size: int = Field(
        default=10000, gt=0, description="Pending notifications kept before tail trimming"
    )
    sms_interval_seconds: float = Field(
        default=0.1, ge=0, description="Pause between two consecutive SMS sends"
    )
    send_timeout_seconds: float | None = Field(
        default=30.0, gt=0, description="Timeout applied to each provider call"
    )
    cache_default_ttl_seconds: float = Field(
        default=300.0, gt=0, description="Default lifetime of cached notifications"
    )
    breaker_threshold: int = Field(
        default=5, gt=0, description="Consecutive failures that open a channel breaker"
    )
    breaker_timeout_seconds: float = Field(
        default=60.0, ge=0, description="Time an open breaker waits before a trial call"
    )
    monitor_window_size: int = Field(
        default=1000, gt=0, description="Samples retained per performance metric"
    )
    monitor_alert_cooldown_seconds: float = Field(
        default=0.0, ge=0, description="Minimum spacing between alerts of one metric"
    )
    throttle_max_per_hour: int = Field(
        default=5, gt=0, description="Notifications of one type and channel per user and hour"
    )
    app_timezone: str = Field(
        default="UTC",
        description="Timezone for naive datetimes and for preferences without a timezone",
    )
    log_level: str = Field(default="INFO", description="Root logging level")
    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for delivering email notifications",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )

    @model_validator(mode="after")
    def _validate_sendgrid_pair(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        return self

    @property
    def email_enabled(self) -> bool:
        """Return whether SendGrid delivery is fully configured."""

        return bool(self.sendgrid_api_key and self.sendgrid_sender)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
