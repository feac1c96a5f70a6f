"""Exceptions raised by the notification delivery infrastructure."""

from __future__ import annotations

from typing import Sequence

from offerhub_notifications.domain.entities import CreateNotificationDTO


class NotificationDeliveryError(Exception):
    """A provider could not deliver a group of notifications."""


class PartialDeliveryError(NotificationDeliveryError):
    """Some notifications of a provider call were delivered and ``failed`` were not."""

    def __init__(self, message: str, failed: Sequence[CreateNotificationDTO]) -> None:
        super().__init__(message)
        self.failed = list(failed)


class SendTimeoutError(NotificationDeliveryError):
    """A provider call did not complete within the configured timeout."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(f"{operation} timed out after {timeout:g}s")
        self.operation = operation
        self.timeout = timeout


class CircuitBreakerOpenError(NotificationDeliveryError):
    """The circuit breaker rejected a call without attempting it."""


__all__ = [
    "CircuitBreakerOpenError",
    "NotificationDeliveryError",
    "PartialDeliveryError",
    "SendTimeoutError",
]
