"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from offerhub_notifications.domain.entities import (
    CreateNotificationDTO,
    Notification,
    NotificationChannel,
    NotificationFrequency,
    NotificationPreferences,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)

TIME_OF_DAY_PATTERN = r"^([01]?\d|2[0-3]):[0-5]\d$"


class NotificationCreate(BaseModel):
    """Creation request accepted by the dispatch queue."""

    user_id: str = Field(..., min_length=1)
    type: NotificationType
    channel: NotificationChannel
    title: str
    content: str
    priority: NotificationPriority | None = None
    action_url: str | None = None
    action_text: str | None = None
    icon: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    expires_at: datetime | None = None

    def to_dto(self) -> CreateNotificationDTO:
        return CreateNotificationDTO(
            user_id=self.user_id,
            type=self.type,
            channel=self.channel,
            title=self.title,
            content=self.content,
            priority=self.priority,
            action_url=self.action_url,
            action_text=self.action_text,
            icon=self.icon,
            metadata=dict(self.metadata),
            expires_at=self.expires_at,
        )


class EnqueueRequest(BaseModel):
    notifications: list[NotificationCreate] = Field(..., min_length=1)


class EnqueueResponse(BaseModel):
    accepted: int
    dropped: int
    queue_size: int


class BatchSummaryRead(BaseModel):
    id: str
    status: str
    total_count: int
    processed_count: int
    failed_count: int
    created_at: datetime
    processed_at: datetime | None = None


class QueueStatusRead(BaseModel):
    """Snapshot of the dispatcher state."""

    size: int
    processing: bool
    dead_letters: int
    rate_limit_per_minute: int
    current_bucket_count: int
    breakers: dict[str, str] = Field(default_factory=dict)
    recent_batches: list[BatchSummaryRead] = Field(default_factory=list)


class PreferenceInput(BaseModel):
    """Preference row supplied by the caller; nothing is stored server side."""

    user_id: str
    type: NotificationType
    channel: NotificationChannel
    enabled: bool = True
    frequency: NotificationFrequency = NotificationFrequency.INSTANT
    quiet_hours_start: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    quiet_hours_end: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    timezone: str | None = None

    def to_entity(self) -> NotificationPreferences:
        return NotificationPreferences(
            user_id=self.user_id,
            type=self.type,
            channel=self.channel,
            enabled=self.enabled,
            frequency=self.frequency,
            quiet_hours_start=self.quiet_hours_start,
            quiet_hours_end=self.quiet_hours_end,
            timezone=self.timezone,
        )


class ComposeRequest(BaseModel):
    """Business event to turn into per-channel notifications."""

    user_id: str = Field(..., min_length=1)
    type: NotificationType
    data: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] | None = None
    preferences: list[PreferenceInput] = Field(default_factory=list)
    enqueue: bool = Field(default=False, description="Hand the composed requests to the queue")


class ComposeResponse(BaseModel):
    notifications: list[NotificationCreate]
    enqueued: EnqueueResponse | None = None


class NotificationInput(BaseModel):
    """Stored notification posted for statistics or export."""

    id: str
    user_id: str
    type: NotificationType
    channel: NotificationChannel
    title: str
    content: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    status: NotificationStatus = NotificationStatus.PENDING
    is_read: bool = False
    is_dismissed: bool = False
    template_id: str | None = None
    action_url: str | None = None
    action_text: str | None = None
    icon: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None
    dismissed_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_entity(self) -> Notification:
        return Notification(**self.model_dump())


class NotificationCollection(BaseModel):
    notifications: list[NotificationInput] = Field(default_factory=list)
    clicked_ids: list[str] = Field(default_factory=list)

    def to_entities(self) -> list[Notification]:
        return [notification.to_entity() for notification in self.notifications]


class EngagementMetricsRead(BaseModel):
    open_rate: float
    click_rate: float
    dismissal_rate: float
    avg_response_time: float


class DeliveryMetricsRead(BaseModel):
    delivery_rate: float
    failure_rate: float
    avg_delivery_time: float


class NotificationStatsRead(BaseModel):
    total_notifications: int
    unread_notifications: int
    notifications_by_type: dict[str, int]
    notifications_by_channel: dict[str, int]
    notifications_by_status: dict[str, int]
    engagement_metrics: EngagementMetricsRead
    delivery_metrics: DeliveryMetricsRead


class MetricSummaryRead(BaseModel):
    name: str
    avg: float
    min: float
    max: float
    count: int


__all__ = [
    "BatchSummaryRead",
    "ComposeRequest",
    "ComposeResponse",
    "DeliveryMetricsRead",
    "EngagementMetricsRead",
    "EnqueueRequest",
    "EnqueueResponse",
    "MetricSummaryRead",
    "NotificationCollection",
    "NotificationCreate",
    "NotificationInput",
    "NotificationStatsRead",
    "PreferenceInput",
    "QueueStatusRead",
]
