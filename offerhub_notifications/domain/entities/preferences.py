"""Domain entity describing per-channel notification preferences."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .notification import NotificationChannel, NotificationType


class NotificationFrequency(str, Enum):
    """How often a user wants to hear about a notification type."""

    INSTANT = "instant"
    DAILY = "daily"
    WEEKLY = "weekly"
    NEVER = "never"


@dataclass
class NotificationPreferences:
    """Preference row for one ``(user, type, channel)`` combination."""

    user_id: str
    type: NotificationType
    channel: NotificationChannel
    enabled: bool = True
    frequency: NotificationFrequency = NotificationFrequency.INSTANT
    quiet_hours_start: str | None = None
    quiet_hours_end: str | None = None
    timezone: str | None = None
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_quiet_hours(self) -> bool:
        return bool(self.quiet_hours_start and self.quiet_hours_end)

    @property
    def allows_delivery(self) -> bool:
        """Return whether this row lets notifications through at all."""

        return self.enabled and self.frequency is not NotificationFrequency.NEVER


__all__ = ["NotificationFrequency", "NotificationPreferences"]
