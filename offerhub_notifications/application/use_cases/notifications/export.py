"""Serialization helpers to export notification collections."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from offerhub_notifications.domain.entities import (
    CreateNotificationDTO,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)

CSV_HEADERS = (
    "ID",
    "Type",
    "Channel",
    "Title",
    "Content",
    "Priority",
    "Status",
    "Created At",
    "Read At",
    "Dismissed At",
    "Action URL",
)

_COMPRESSED_KEYS = {
    "user_id": "u",
    "type": "t",
    "channel": "c",
    "title": "ti",
    "content": "co",
    "priority": "p",
    "action_url": "au",
    "action_text": "at",
}


def _iso_or_empty(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def export_notifications_to_csv(notifications: Iterable[Notification]) -> str:
    """Render ``notifications`` as CSV with every cell quoted."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for n in notifications:
        writer.writerow(
            [
                n.id,
                n.type.value,
                n.channel.value,
                n.title,
                n.content.replace("\r\n", " ").replace("\n", " "),
                n.priority.value,
                n.status.value,
                _iso_or_empty(n.created_at),
                _iso_or_empty(n.read_at),
                _iso_or_empty(n.dismissed_at),
                n.action_url or "",
            ]
        )
    return buffer.getvalue().rstrip("\n")


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return a JSON-serializable representation of ``notification``."""

    payload = asdict(notification)
    _normalize_values(payload)
    return payload


def export_notifications_to_json(notifications: Iterable[Notification]) -> str:
    return json.dumps([serialize_notification(n) for n in notifications], indent=2)


def compress_notification_data(notifications: Iterable[CreateNotificationDTO]) -> str:
    """Encode creation requests as JSON using short keys for the display fields."""

    compressed = []
    for notification in notifications:
        data = notification.to_dict()
        compressed.append({short: data[name] for name, short in _COMPRESSED_KEYS.items()})
    return json.dumps(compressed, separators=(",", ":"))


def decompress_notification_data(payload: str) -> list[CreateNotificationDTO]:
    """Inverse of :func:`compress_notification_data`."""

    notifications: list[CreateNotificationDTO] = []
    for item in json.loads(payload):
        priority = item.get("p")
        notifications.append(
            CreateNotificationDTO(
                user_id=item["u"],
                type=NotificationType(item["t"]),
                channel=NotificationChannel(item["c"]),
                title=item["ti"],
                content=item["co"],
                priority=NotificationPriority(priority) if priority else None,
                action_url=item.get("au"),
                action_text=item.get("at"),
            )
        )
    return notifications


def _normalize_values(data: dict[str, Any] | list[Any]) -> None:
    """Convert nested ``datetime`` and enum values into JSON primitives in place."""

    if isinstance(data, dict):
        items = list(data.items())
    else:
        items = list(enumerate(data))

    for key, value in items:
        if isinstance(value, datetime):
            data[key] = value.isoformat()
        elif isinstance(value, Enum):
            data[key] = value.value
        elif isinstance(value, (dict, list)):
            _normalize_values(value)


__all__ = [
    "CSV_HEADERS",
    "compress_notification_data",
    "decompress_notification_data",
    "export_notifications_to_csv",
    "export_notifications_to_json",
    "serialize_notification",
]
