"""Build creation requests for business events before they are enqueued."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from offerhub_notifications.domain.entities import (
    CreateNotificationDTO,
    NotificationPreferences,
    NotificationType,
)

from .content import generate_notification_content
from .routing import (
    calculate_notification_priority,
    select_optimal_channels,
    should_send_notification,
)

logger = logging.getLogger(__name__)


def compose_notifications(
    user_id: str,
    type: NotificationType,
    data: Mapping[str, Any] | None = None,
    preferences: Sequence[NotificationPreferences] = (),
    *,
    context: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> list[CreateNotificationDTO]:
    """Return one request per channel selected for ``type`` and ``user_id``.

    ``data`` feeds the content template and ``context`` the priority rules
    (``data`` is used for both when ``context`` is omitted). Channels blocked
    by preferences or quiet hours are left out. A user without any preference
    rows still receives the in-app notification.
    """

    data = data or {}
    rule_context = context if context is not None else data
    own_preferences = [p for p in preferences if p.user_id == user_id]

    content = generate_notification_content(type, data)
    priority = calculate_notification_priority(type, rule_context)
    channels = select_optimal_channels(type, own_preferences, priority)

    requests: list[CreateNotificationDTO] = []
    for channel in channels:
        request = CreateNotificationDTO(
            user_id=user_id,
            type=type,
            channel=channel,
            title=content.title,
            content=content.content,
            priority=priority,
            action_url=content.action_url,
            action_text=content.action_text,
            metadata=dict(data),
        )
        if own_preferences and not should_send_notification(request, own_preferences, now):
            logger.debug(
                "Skipping %s notification for user %s on %s",
                type.value,
                user_id,
                channel.value,
            )
            continue
        requests.append(request)
    return requests


__all__ = ["compose_notifications"]
