"""Push in-app notifications to websocket subscribers."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from offerhub_notifications.domain.entities import CreateNotificationDTO

from .manager import NotificationConnectionManager

logger = logging.getLogger(__name__)


class InAppPublisher:
    """Serialize creation requests and deliver them to connected users."""

    def __init__(self, manager: NotificationConnectionManager) -> None:
        self._manager = manager

    async def publish(self, notifications: Sequence[CreateNotificationDTO]) -> int:
        """Send every notification to its user's sockets; return deliveries made.

        Users without an open connection are skipped; they pick the
        notification up from the notification center instead.
        """

        delivered = 0
        for notification in notifications:
            message = {"type": "notification", "data": serialize_request(notification)}
            delivered += await self._manager.send_to_user(notification.user_id, message)
        logger.debug(
            "Published %s in-app notifications (%s socket deliveries)",
            len(notifications),
            delivered,
        )
        return delivered


def serialize_request(notification: CreateNotificationDTO) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    payload = notification.to_dict()
    payload["priority"] = notification.effective_priority.value
    return payload


__all__ = ["InAppPublisher", "serialize_request"]
