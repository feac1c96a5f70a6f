"""Tests for composing per-channel notifications from business events."""

from __future__ import annotations

from datetime import datetime, timezone

from offerhub_notifications.application.use_cases import compose_notifications
from offerhub_notifications.domain.entities import (
    NotificationChannel,
    NotificationPreferences,
    NotificationPriority,
    NotificationType,
)


def _preference(channel: NotificationChannel, **kwargs) -> NotificationPreferences:
    return NotificationPreferences(
        user_id="user-1", type=NotificationType.SECURITY_ALERT, channel=channel, **kwargs
    )


def test_user_without_preferences_gets_in_app_only() -> None:
    [request] = compose_notifications(
        "user-1", NotificationType.NEW_MESSAGE, {"senderName": "Ana"}
    )

    assert request.channel is NotificationChannel.IN_APP
    assert request.priority is NotificationPriority.NORMAL
    assert request.content == "You have a new message from Ana"
    assert request.metadata == {"senderName": "Ana"}


def test_critical_security_alert_is_urgent_and_skips_quiet_channels() -> None:
    preferences = [
        _preference(NotificationChannel.SMS, quiet_hours_start="22:00", quiet_hours_end="08:00"),
        _preference(NotificationChannel.PUSH),
        _preference(NotificationChannel.EMAIL),
    ]
    night = datetime(2024, 1, 1, 23, 30, tzinfo=timezone.utc)

    requests = compose_notifications(
        "user-1",
        NotificationType.SECURITY_ALERT,
        {"alertType": "New login", "location": "Madrid"},
        preferences,
        context={"severity": "critical"},
        now=night,
    )

    assert [r.channel for r in requests] == [NotificationChannel.PUSH]
    assert requests[0].priority is NotificationPriority.URGENT
    assert requests[0].title == "Security Alert"


def test_preferences_of_other_users_are_ignored() -> None:
    other = NotificationPreferences(
        user_id="user-2",
        type=NotificationType.NEW_MESSAGE,
        channel=NotificationChannel.EMAIL,
    )

    requests = compose_notifications("user-1", NotificationType.NEW_MESSAGE, {}, [other])

    assert [r.channel for r in requests] == [NotificationChannel.IN_APP]
