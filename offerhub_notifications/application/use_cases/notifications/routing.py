"""Priority, channel and delivery-window decisions for notifications."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from offerhub_notifications.config import get_settings
from offerhub_notifications.domain.entities import (
    CreateNotificationDTO,
    Notification,
    NotificationChannel,
    NotificationPreferences,
    NotificationPriority,
    NotificationType,
)
from offerhub_notifications.utils import (
    ensure_app_timezone,
    get_app_timezone,
    resolve_timezone,
    utc_now,
)

_HIGH_PRIORITY_TYPES = frozenset(
    {
        NotificationType.DISPUTE_OPENED,
        NotificationType.SECURITY_ALERT,
        NotificationType.PAYMENT_RECEIVED,
    }
)
_NORMAL_PRIORITY_TYPES = frozenset(
    {
        NotificationType.NEW_MESSAGE,
        NotificationType.MILESTONE_APPROVED,
        NotificationType.MILESTONE_REJECTED,
        NotificationType.DISPUTE_RESOLVED,
    }
)
_LOW_PRIORITY_TYPES = frozenset(
    {NotificationType.FEATURE_ANNOUNCEMENT, NotificationType.PAYMENT_SENT}
)

_URGENT_CHANNELS = frozenset(
    {NotificationChannel.PUSH, NotificationChannel.SMS, NotificationChannel.IN_APP}
)
_HIGH_PRIORITY_CHANNELS = frozenset(
    {NotificationChannel.PUSH, NotificationChannel.EMAIL, NotificationChannel.IN_APP}
)

THROTTLE_WINDOW = timedelta(hours=1)
MINUTES_PER_DAY = 24 * 60


def calculate_notification_priority(
    type: NotificationType, context: Mapping[str, Any] | None = None
) -> NotificationPriority:
    """Classify ``type`` into a priority using the event ``context``.

    ``context`` may carry ``severity`` (security alerts) and ``daysLeft``
    (deadline reminders).
    """

    context = context or {}
    if type is NotificationType.SECURITY_ALERT and context.get("severity") == "critical":
        return NotificationPriority.URGENT

    if type in _HIGH_PRIORITY_TYPES:
        return NotificationPriority.HIGH

    if type is NotificationType.DEADLINE_REMINDER:
        days_left = _as_number(context.get("daysLeft"))
        if days_left is not None and days_left <= 1:
            return NotificationPriority.HIGH

    if type in _NORMAL_PRIORITY_TYPES:
        return NotificationPriority.NORMAL

    if type in _LOW_PRIORITY_TYPES:
        return NotificationPriority.LOW

    return NotificationPriority.NORMAL


def select_optimal_channels(
    type: NotificationType,
    preferences: Iterable[NotificationPreferences],
    urgency: NotificationPriority,
) -> list[NotificationChannel]:
    """Return the channels a notification of ``type`` should go out on."""

    enabled = _unique_channels(
        preference.channel
        for preference in preferences
        if preference.type is type and preference.allows_delivery
    )
    if not enabled:
        return [NotificationChannel.IN_APP]

    if urgency is NotificationPriority.URGENT:
        selected = [channel for channel in enabled if channel in _URGENT_CHANNELS]
        return selected or [NotificationChannel.IN_APP]

    if urgency is NotificationPriority.HIGH:
        selected = [channel for channel in enabled if channel in _HIGH_PRIORITY_CHANNELS]
        return selected or [NotificationChannel.IN_APP]

    return enabled


def parse_time(value: str) -> int:
    """Convert an ``HH:MM`` string into minutes since midnight."""

    hours, _, minutes = value.strip().partition(":")
    total = int(hours) * 60 + int(minutes or 0)
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"Time of day out of range: {value!r}")
    return total


def is_within_quiet_hours(current: int, start: int, end: int) -> bool:
    """Return whether minute-of-day ``current`` falls in ``[start, end]``.

    A window whose ``start`` is later than its ``end`` spans midnight.
    """

    if start > end:
        return current >= start or current <= end
    return start <= current <= end


def in_quiet_hours(preference: NotificationPreferences, now: datetime | None = None) -> bool:
    """Return whether ``now`` is inside the quiet hours of ``preference``.

    Preferences without a timezone are read in the application timezone.
    """

    if not preference.has_quiet_hours:
        return False

    moment = ensure_app_timezone(now) if now is not None else utc_now()
    tz = resolve_timezone(preference.timezone) if preference.timezone else get_app_timezone()
    local = moment.astimezone(tz)
    current = local.hour * 60 + local.minute
    return is_within_quiet_hours(
        current,
        parse_time(preference.quiet_hours_start or ""),
        parse_time(preference.quiet_hours_end or ""),
    )


def should_send_notification(
    notification: CreateNotificationDTO,
    preferences: Sequence[NotificationPreferences],
    now: datetime | None = None,
) -> bool:
    """Return whether ``notification`` may be delivered right now."""

    type_preferences = [
        preference
        for preference in preferences
        if preference.user_id == notification.user_id and preference.type is notification.type
    ]
    if not any(preference.allows_delivery for preference in type_preferences):
        return False

    channel_preference = next(
        (p for p in type_preferences if p.channel is notification.channel), None
    )
    if channel_preference is not None and in_quiet_hours(channel_preference, now):
        return False

    return True


def should_throttle_notification(
    user_id: str,
    type: NotificationType,
    channel: NotificationChannel,
    recent_notifications: Iterable[Notification],
    max_per_hour: int | None = None,
    now: datetime | None = None,
) -> bool:
    """Return ``True`` when the user already got ``max_per_hour`` similar notifications.

    ``max_per_hour`` defaults to the ``throttle_max_per_hour`` setting.
    """

    if max_per_hour is None:
        max_per_hour = get_settings().throttle_max_per_hour

    cutoff = (ensure_app_timezone(now) if now is not None else utc_now()) - THROTTLE_WINDOW
    recent_count = sum(
        1
        for notification in recent_notifications
        if notification.user_id == user_id
        and notification.type is type
        and notification.channel is channel
        and notification.created_at is not None
        and ensure_app_timezone(notification.created_at) > cutoff
    )
    return recent_count >= max_per_hour


def _unique_channels(channels: Iterable[NotificationChannel]) -> list[NotificationChannel]:
    unique: list[NotificationChannel] = []
    for channel in channels:
        if channel not in unique:
            unique.append(channel)
    return unique


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


__all__ = [
    "calculate_notification_priority",
    "in_quiet_hours",
    "is_within_quiet_hours",
    "parse_time",
    "select_optimal_channels",
    "should_send_notification",
    "should_throttle_notification",
]
