"""Explicit wiring of the notification delivery components."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from offerhub_notifications.config import Settings, get_settings
from offerhub_notifications.domain.entities import CreateNotificationDTO, NotificationChannel

from .cache import NotificationCache
from .circuit_breaker import CircuitBreaker
from .manager import NotificationConnectionManager
from .monitor import PerformanceMonitor
from .publisher import InAppPublisher, serialize_request
from .queue import EnqueueResult, NotificationQueue, QueueConfig
from .senders import DeliverySenders, NotificationSenders

logger = logging.getLogger(__name__)


def notification_cache_key(notification: CreateNotificationDTO) -> str:
    """Return the lookup key under which a queued request is cached."""

    return f"{notification.user_id}:{notification.type.value}:{notification.channel.value}"


@dataclass
class NotificationServices:
    """Instances shared by the HTTP layer for the lifetime of one application."""

    settings: Settings
    queue: NotificationQueue
    cache: NotificationCache[dict[str, Any]]
    monitor: PerformanceMonitor
    manager: NotificationConnectionManager
    breakers: dict[NotificationChannel, CircuitBreaker] = field(default_factory=dict)

    def submit(self, notifications: list[CreateNotificationDTO]) -> EnqueueResult:
        """Cache the requests for lookup and hand them to the queue."""

        for notification in notifications:
            self.cache.set(notification_cache_key(notification), serialize_request(notification))
        return self.queue.enqueue(notifications)

    async def aclose(self) -> None:
        await self.queue.stop()
        removed = self.cache.cleanup()
        logger.debug("Notification services closed; %s expired cache entries removed", removed)


def build_notification_services(
    settings: Settings | None = None,
    *,
    senders: NotificationSenders | None = None,
) -> NotificationServices:
    """Create the queue, cache, breakers and monitor described by ``settings``."""

    settings = settings or get_settings()
    manager = NotificationConnectionManager()
    monitor = PerformanceMonitor(
        settings.monitor_window_size,
        alert_cooldown=settings.monitor_alert_cooldown_seconds,
    )
    monitor.add_alert(lambda message: logger.warning("Notification alert: %s", message))

    breakers = {
        channel: CircuitBreaker(
            settings.breaker_threshold,
            settings.breaker_timeout_seconds,
            name=channel.value,
        )
        for channel in NotificationChannel
    }
    if senders is None:
        senders = DeliverySenders(
            publisher=InAppPublisher(manager),
            email_enabled=settings.email_enabled,
        )

    queue = NotificationQueue(
        senders,
        QueueConfig.from_settings(settings),
        monitor=monitor,
        breakers=breakers,
    )
    return NotificationServices(
        settings=settings,
        queue=queue,
        cache=NotificationCache(settings.cache_default_ttl_seconds),
        monitor=monitor,
        manager=manager,
        breakers=breakers,
    )


__all__ = ["NotificationServices", "build_notification_services", "notification_cache_key"]
