"""Derived, read-only aggregates computed from notification collections."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from .notification import (
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)


@dataclass(frozen=True)
class EngagementMetrics:
    open_rate: float = 0.0
    click_rate: float = 0.0
    dismissal_rate: float = 0.0
    avg_response_time: float = 0.0


@dataclass(frozen=True)
class DeliveryMetrics:
    delivery_rate: float = 0.0
    failure_rate: float = 0.0
    avg_delivery_time: float = 0.0


@dataclass(frozen=True)
class NotificationStats:
    """Counts and rates over a notification collection.

    Times (``avg_response_time`` and ``avg_delivery_time``) are in seconds.
    """

    total_notifications: int
    unread_notifications: int
    notifications_by_type: dict[str, int]
    notifications_by_channel: dict[str, int]
    notifications_by_status: dict[str, int]
    engagement_metrics: EngagementMetrics = field(default_factory=EngagementMetrics)
    delivery_metrics: DeliveryMetrics = field(default_factory=DeliveryMetrics)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NotificationEngagement:
    """How a single user interacts with the notifications they receive."""

    user_id: str
    total_notifications: int
    read_notifications: int
    clicked_notifications: int
    dismissed_notifications: int
    engagement_rate: float
    avg_response_time: float
    preferred_channels: list[NotificationChannel] = field(default_factory=list)
    preferred_times: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["preferred_channels"] = [channel.value for channel in self.preferred_channels]
        return payload


@dataclass
class NotificationFilter:
    """Optional criteria used to narrow a notification collection."""

    types: list[NotificationType] | None = None
    channels: list[NotificationChannel] | None = None
    status: list[NotificationStatus] | None = None
    priority: list[NotificationPriority] | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    is_read: bool | None = None
    is_dismissed: bool | None = None
    search: str | None = None


__all__ = [
    "DeliveryMetrics",
    "EngagementMetrics",
    "NotificationEngagement",
    "NotificationFilter",
    "NotificationStats",
]
