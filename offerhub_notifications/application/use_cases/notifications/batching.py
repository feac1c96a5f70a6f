"""Grouping, deduplication and ordering helpers for creation requests."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from typing import Hashable, TypeVar

from offerhub_notifications.domain.entities import (
    CreateNotificationDTO,
    NotificationBatch,
    NotificationChannel,
    NotificationPreferences,
    priority_rank,
)

from .content import optimize_notification_content

T = TypeVar("T")

TITLE_MAX_LENGTH = 100
CONTENT_MAX_LENGTH = 160


def batch_notifications(
    notifications: Sequence[CreateNotificationDTO], batch_size: int = 100
) -> list[list[CreateNotificationDTO]]:
    """Split ``notifications`` into consecutive chunks of ``batch_size``."""

    if batch_size <= 0:
        raise ValueError("batch_size must be greater than zero")
    return [
        list(notifications[index : index + batch_size])
        for index in range(0, len(notifications), batch_size)
    ]


def batch_notifications_by_user(
    notifications: Iterable[CreateNotificationDTO],
) -> dict[str, list[CreateNotificationDTO]]:
    return group_by(notifications, lambda notification: notification.user_id)


def group_by(items: Iterable[T], key: Callable[[T], Hashable]) -> dict[Hashable, list[T]]:
    """Group ``items`` by ``key(item)`` keeping first-seen key order."""

    groups: dict[Hashable, list[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def deduplicate_notifications(
    notifications: Iterable[CreateNotificationDTO],
) -> list[CreateNotificationDTO]:
    """Drop repeats of the same ``(user_id, type, content)``; the first one wins."""

    seen: set[tuple[str, str, str]] = set()
    unique: list[CreateNotificationDTO] = []
    for notification in notifications:
        key = (notification.user_id, notification.type.value, notification.content)
        if key in seen:
            continue
        seen.add(key)
        unique.append(notification)
    return unique


def sort_by_priority(
    notifications: Iterable[CreateNotificationDTO],
) -> list[CreateNotificationDTO]:
    """Order ``notifications`` urgent first, keeping input order within a tier."""

    return sorted(notifications, key=lambda notification: priority_rank(notification.priority))


def filter_by_preferences(
    notifications: Iterable[CreateNotificationDTO],
    preferences: Sequence[NotificationPreferences],
) -> list[CreateNotificationDTO]:
    """Keep the requests that have an enabled ``(user, type, channel)`` preference."""

    allowed = {
        (preference.user_id, preference.type, preference.channel)
        for preference in preferences
        if preference.allows_delivery
    }
    return [
        notification
        for notification in notifications
        if (notification.user_id, notification.type, notification.channel) in allowed
    ]


def optimize_notification_delivery(
    notifications: Iterable[CreateNotificationDTO],
    preferences: Sequence[NotificationPreferences] | None = None,
) -> list[CreateNotificationDTO]:
    """Deduplicate, filter, order and shorten a set of creation requests.

    The input objects are left untouched; shortened copies are returned.
    """

    candidates = deduplicate_notifications(notifications)
    if preferences is not None:
        candidates = filter_by_preferences(candidates, preferences)

    return [
        replace(
            notification,
            title=optimize_notification_content(notification.title, TITLE_MAX_LENGTH),
            content=optimize_notification_content(notification.content, CONTENT_MAX_LENGTH),
        )
        for notification in sort_by_priority(candidates)
    ]


def create_optimal_batches(
    notifications: Iterable[CreateNotificationDTO],
    preferences: Sequence[NotificationPreferences],
    batch_size: int = 100,
) -> list[NotificationBatch]:
    """Build pending batches per ``(user, channel)`` the user has enabled."""

    enabled_channels: set[tuple[str, NotificationChannel]] = {
        (preference.user_id, preference.channel)
        for preference in preferences
        if preference.allows_delivery
    }
    groups = group_by(
        notifications, lambda notification: (notification.user_id, notification.channel)
    )

    batches: list[NotificationBatch] = []
    for key, grouped in groups.items():
        if key not in enabled_channels:
            continue
        for chunk in batch_notifications(grouped, batch_size):
            batches.append(NotificationBatch(notifications=chunk))
    return batches


def distribute_notifications(
    notifications: Iterable[CreateNotificationDTO], workers: Sequence[str]
) -> dict[str, list[CreateNotificationDTO]]:
    """Spread ``notifications`` across ``workers`` round-robin."""

    if not workers:
        raise ValueError("At least one worker is required")

    distribution: dict[str, list[CreateNotificationDTO]] = {worker: [] for worker in workers}
    for index, notification in enumerate(notifications):
        distribution[workers[index % len(workers)]].append(notification)
    return distribution


__all__ = [
    "batch_notifications",
    "batch_notifications_by_user",
    "create_optimal_batches",
    "deduplicate_notifications",
    "distribute_notifications",
    "filter_by_preferences",
    "group_by",
    "optimize_notification_delivery",
    "sort_by_priority",
]
