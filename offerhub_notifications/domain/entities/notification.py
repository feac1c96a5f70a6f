"""Domain entities describing notifications and their creation requests."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Business events that can produce a notification."""

    NEW_MESSAGE = "new_message"
    MESSAGE_READ = "message_read"
    PROJECT_UPDATE = "project_update"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_SENT = "payment_sent"
    MILESTONE_APPROVED = "milestone_approved"
    MILESTONE_REJECTED = "milestone_rejected"
    DISPUTE_OPENED = "dispute_opened"
    DISPUTE_RESOLVED = "dispute_resolved"
    CONTRACT_SIGNED = "contract_signed"
    DEADLINE_REMINDER = "deadline_reminder"
    SECURITY_ALERT = "security_alert"
    SYSTEM_MAINTENANCE = "system_maintenance"
    FEATURE_ANNOUNCEMENT = "feature_announcement"


class NotificationChannel(str, Enum):
    """Delivery channels supported by the dispatcher."""

    PUSH = "push"
    EMAIL = "email"
    IN_APP = "in_app"
    SMS = "sms"


class NotificationPriority(str, Enum):
    """Urgency levels, from least to most urgent."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationStatus(str, Enum):
    """Lifecycle status reported for a stored notification."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"
    DISMISSED = "dismissed"


PRIORITY_RANK: dict[NotificationPriority, int] = {
    NotificationPriority.URGENT: 0,
    NotificationPriority.HIGH: 1,
    NotificationPriority.NORMAL: 2,
    NotificationPriority.LOW: 3,
}


def priority_rank(priority: NotificationPriority | None) -> int:
    """Return the sort rank for ``priority``; a missing priority counts as normal."""

    return PRIORITY_RANK[priority or NotificationPriority.NORMAL]


@dataclass
class Notification:
    """Notification delivered to a user.

    Only the read and dismiss flags (and their timestamps) change after
    delivery; each is set at most once.
    """

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
    metadata: dict[str, Any] = field(default_factory=dict)
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    read_at: datetime | None = None
    dismissed_at: datetime | None = None
    expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def mark_read(self, at: datetime) -> bool:
        """Flag the notification as read; return ``False`` when it already was."""

        if self.is_read:
            return False
        self.is_read = True
        self.read_at = at
        self.updated_at = at
        return True

    def dismiss(self, at: datetime) -> bool:
        """Flag the notification as dismissed; return ``False`` when it already was."""

        if self.is_dismissed:
            return False
        self.is_dismissed = True
        self.dismissed_at = at
        self.updated_at = at
        return True


@dataclass
class CreateNotificationDTO:
    """Construction-time subset of :class:`Notification` accepted by the queue."""

    user_id: str
    type: NotificationType
    channel: NotificationChannel
    title: str
    content: str
    priority: NotificationPriority | None = None
    action_url: str | None = None
    action_text: str | None = None
    icon: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None

    @property
    def effective_priority(self) -> NotificationPriority:
        return self.priority or NotificationPriority.NORMAL

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the request."""

        return {
            "user_id": self.user_id,
            "type": self.type.value,
            "channel": self.channel.value,
            "title": self.title,
            "content": self.content,
            "priority": self.priority.value if self.priority else None,
            "action_url": self.action_url,
            "action_text": self.action_text,
            "icon": self.icon,
            "metadata": dict(self.metadata),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True)
class QueuedNotification:
    """A creation request tracked by the dispatcher with its retry count."""

    dto: CreateNotificationDTO
    attempt: int = 0

    def next_attempt(self) -> "QueuedNotification":
        return replace(self, attempt=self.attempt + 1)


__all__ = [
    "CreateNotificationDTO",
    "Notification",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationType",
    "PRIORITY_RANK",
    "QueuedNotification",
    "priority_rank",
]
