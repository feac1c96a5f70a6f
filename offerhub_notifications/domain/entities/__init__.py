"""Domain entities exposed by the application."""

from .batch import BatchStatus, InvalidBatchTransition, NotificationBatch
from .notification import (
    PRIORITY_RANK,
    CreateNotificationDTO,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    QueuedNotification,
    priority_rank,
)
from .preferences import NotificationFrequency, NotificationPreferences
from .stats import (
    DeliveryMetrics,
    EngagementMetrics,
    NotificationEngagement,
    NotificationFilter,
    NotificationStats,
)

__all__ = [
    "BatchStatus",
    "CreateNotificationDTO",
    "DeliveryMetrics",
    "EngagementMetrics",
    "InvalidBatchTransition",
    "Notification",
    "NotificationBatch",
    "NotificationChannel",
    "NotificationEngagement",
    "NotificationFilter",
    "NotificationFrequency",
    "NotificationPreferences",
    "NotificationPriority",
    "NotificationStats",
    "NotificationStatus",
    "NotificationType",
    "PRIORITY_RANK",
    "QueuedNotification",
    "priority_rank",
]
