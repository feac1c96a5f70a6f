"""Aggregate statistics, engagement and filtering over notification collections."""

from __future__ import annotations

from collections import Counter
from collections.abc import Collection, Iterable, Sequence

from offerhub_notifications.domain.entities import (
    DeliveryMetrics,
    EngagementMetrics,
    Notification,
    NotificationChannel,
    NotificationEngagement,
    NotificationFilter,
    NotificationStats,
    NotificationStatus,
)
from offerhub_notifications.utils import ensure_app_timezone

_DELIVERED_STATUSES = frozenset({NotificationStatus.DELIVERED, NotificationStatus.READ})
_PREFERRED_TIMES_LIMIT = 3


def _ratio(count: int, total: int) -> float:
    return count / total if total else 0.0


def _is_opened(notification: Notification) -> bool:
    return notification.is_read or notification.dismissed_at is not None


def calculate_engagement_rate(notifications: Collection[Notification]) -> float:
    """Fraction of notifications that were read or dismissed."""

    return _ratio(sum(1 for n in notifications if _is_opened(n)), len(notifications))


def calculate_response_time(notifications: Iterable[Notification]) -> float:
    """Average seconds between creation and reading, over read notifications."""

    durations = [
        (ensure_app_timezone(n.read_at) - ensure_app_timezone(n.created_at)).total_seconds()
        for n in notifications
        if n.read_at is not None and n.created_at is not None
    ]
    return sum(durations) / len(durations) if durations else 0.0


def calculate_delivery_time(notifications: Iterable[Notification]) -> float:
    """Average seconds between sending and delivery, over delivered notifications."""

    durations = [
        (ensure_app_timezone(n.delivered_at) - ensure_app_timezone(n.sent_at)).total_seconds()
        for n in notifications
        if n.delivered_at is not None and n.sent_at is not None
    ]
    return sum(durations) / len(durations) if durations else 0.0


def generate_notification_stats(
    notifications: Sequence[Notification], clicked_ids: Collection[str] = ()
) -> NotificationStats:
    """Compute counts per type/channel/status plus engagement and delivery rates."""

    total = len(notifications)
    clicked = set(clicked_ids)

    engagement = EngagementMetrics(
        open_rate=calculate_engagement_rate(notifications),
        click_rate=_ratio(sum(1 for n in notifications if n.id in clicked), total),
        dismissal_rate=_ratio(sum(1 for n in notifications if n.is_dismissed), total),
        avg_response_time=calculate_response_time(notifications),
    )
    delivery = DeliveryMetrics(
        delivery_rate=_ratio(
            sum(1 for n in notifications if n.status in _DELIVERED_STATUSES), total
        ),
        failure_rate=_ratio(
            sum(1 for n in notifications if n.status is NotificationStatus.FAILED), total
        ),
        avg_delivery_time=calculate_delivery_time(notifications),
    )

    return NotificationStats(
        total_notifications=total,
        unread_notifications=sum(
            1 for n in notifications if not n.is_read and not n.is_dismissed
        ),
        notifications_by_type=dict(Counter(n.type.value for n in notifications)),
        notifications_by_channel=dict(Counter(n.channel.value for n in notifications)),
        notifications_by_status=dict(Counter(n.status.value for n in notifications)),
        engagement_metrics=engagement,
        delivery_metrics=delivery,
    )


def build_notification_engagement(
    user_id: str,
    notifications: Iterable[Notification],
    clicked_ids: Collection[str] = (),
) -> NotificationEngagement:
    """Summarize how ``user_id`` engages with the notifications addressed to them.

    Preferred channels are ranked by how many notifications were opened on
    them; preferred times are the busiest reading hours as ``HH:00`` strings.
    """

    own = [n for n in notifications if n.user_id == user_id]
    clicked = set(clicked_ids)
    opened = [n for n in own if _is_opened(n)]

    channel_counts: Counter[NotificationChannel] = Counter(n.channel for n in opened)
    hour_counts: Counter[str] = Counter(
        f"{ensure_app_timezone(n.read_at).hour:02d}:00" for n in own if n.read_at is not None
    )

    return NotificationEngagement(
        user_id=user_id,
        total_notifications=len(own),
        read_notifications=sum(1 for n in own if n.is_read),
        clicked_notifications=sum(1 for n in own if n.id in clicked),
        dismissed_notifications=sum(1 for n in own if n.is_dismissed),
        engagement_rate=_ratio(len(opened), len(own)),
        avg_response_time=calculate_response_time(own),
        preferred_channels=[channel for channel, _ in channel_counts.most_common()],
        preferred_times=[hour for hour, _ in hour_counts.most_common(_PREFERRED_TIMES_LIMIT)],
    )


def apply_notification_filter(
    notifications: Iterable[Notification], criteria: NotificationFilter
) -> list[Notification]:
    """Return the notifications matching every criterion set on ``criteria``."""

    date_from = ensure_app_timezone(criteria.date_from)
    date_to = ensure_app_timezone(criteria.date_to)
    search = criteria.search.lower() if criteria.search else None

    matches: list[Notification] = []
    for notification in notifications:
        if criteria.types and notification.type not in criteria.types:
            continue
        if criteria.channels and notification.channel not in criteria.channels:
            continue
        if criteria.status and notification.status not in criteria.status:
            continue
        if criteria.priority and notification.priority not in criteria.priority:
            continue

        created_at = ensure_app_timezone(notification.created_at)
        if date_from is not None and (created_at is None or created_at < date_from):
            continue
        if date_to is not None and (created_at is None or created_at > date_to):
            continue

        if criteria.is_read is not None and notification.is_read != criteria.is_read:
            continue
        if criteria.is_dismissed is not None and notification.is_dismissed != criteria.is_dismissed:
            continue

        if search and not (
            search in notification.title.lower()
            or search in notification.content.lower()
            or search in notification.type.value
        ):
            continue

        matches.append(notification)
    return matches


__all__ = [
    "apply_notification_filter",
    "build_notification_engagement",
    "calculate_delivery_time",
    "calculate_engagement_rate",
    "calculate_response_time",
    "generate_notification_stats",
]
