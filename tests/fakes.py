"""Deterministic stand-ins for time and delivery providers used by the tests."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Callable, Sequence

# Ensure the project root (which contains the ``offerhub_notifications`` package) is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from offerhub_notifications.domain.entities import (
    CreateNotificationDTO,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from offerhub_notifications.infrastructure.notifications import NotificationDeliveryError


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Async sleep that advances ``clock`` instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


FailurePredicate = Callable[[str, str], bool]


class RecordingSenders:
    """Provider set that records every call and fails on demand.

    ``fail(channel, key)`` decides whether a call raises; ``key`` is the user
    for push and sms, the template for email and ``"*"`` for in-app.
    """

    def __init__(
        self,
        *,
        clock: FakeClock | None = None,
        fail: FailurePredicate | None = None,
    ) -> None:
        self.clock = clock
        self.fail = fail or (lambda channel, key: False)
        self.calls: list[tuple[str, str, list[CreateNotificationDTO]]] = []
        self.call_times: list[float] = []

    async def send_push_batch(
        self, user_id: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None:
        self._record("push", user_id, notifications)

    async def send_email_batch(
        self, template: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None:
        self._record("email", template, notifications)

    async def send_sms(self, notification: CreateNotificationDTO) -> None:
        self._record("sms", notification.user_id, [notification])

    async def send_in_app_batch(self, notifications: Sequence[CreateNotificationDTO]) -> None:
        self._record("in_app", "*", notifications)

    def calls_for(self, channel: str) -> list[tuple[str, str, list[CreateNotificationDTO]]]:
        return [call for call in self.calls if call[0] == channel]

    def _record(self, channel: str, key: str, notifications: Sequence[CreateNotificationDTO]) -> None:
        self.calls.append((channel, key, list(notifications)))
        if self.clock is not None:
            self.call_times.append(self.clock())
        if self.fail(channel, key):
            raise NotificationDeliveryError(f"{channel} delivery failed for {key}")


class FailingTimes:
    """Failure predicate that fails the first ``times`` calls for ``key``."""

    def __init__(self, key: str, times: int) -> None:
        self.key = key
        self.remaining = times

    def __call__(self, channel: str, key: str) -> bool:
        if key != self.key or self.remaining <= 0:
            return False
        self.remaining -= 1
        return True


def make_request(
    user_id: str = "user-1",
    *,
    channel: NotificationChannel = NotificationChannel.PUSH,
    type: NotificationType = NotificationType.NEW_MESSAGE,
    priority: NotificationPriority | None = NotificationPriority.NORMAL,
    title: str = "New Message",
    content: str = "You have a new message",
) -> CreateNotificationDTO:
    return CreateNotificationDTO(
        user_id=user_id,
        type=type,
        channel=channel,
        title=title,
        content=content,
        priority=priority,
    )
