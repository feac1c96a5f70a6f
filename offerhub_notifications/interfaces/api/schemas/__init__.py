from .notification import (
    BatchSummaryRead,
    ComposeRequest,
    ComposeResponse,
    DeliveryMetricsRead,
    EngagementMetricsRead,
    EnqueueRequest,
    EnqueueResponse,
    MetricSummaryRead,
    NotificationCollection,
    NotificationCreate,
    NotificationInput,
    NotificationStatsRead,
    PreferenceInput,
    QueueStatusRead,
)

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
