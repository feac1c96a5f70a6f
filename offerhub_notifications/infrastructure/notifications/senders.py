"""Provider strategies invoked by the queue for each delivery channel."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from anyio import to_thread

from offerhub_notifications.domain.entities import CreateNotificationDTO
from offerhub_notifications.infrastructure.email import render_notification_email, send_email

from .errors import PartialDeliveryError
from .publisher import InAppPublisher

logger = logging.getLogger(__name__)

EMAIL_METADATA_KEY = "email"


class NotificationSenders(Protocol):
    """Per-channel provider calls.

    Raising marks the whole call as failed, except for
    :class:`PartialDeliveryError`, which names the notifications that failed.
    """

    async def send_push_batch(
        self, user_id: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None: ...

    async def send_email_batch(
        self, template: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None: ...

    async def send_sms(self, notification: CreateNotificationDTO) -> None: ...

    async def send_in_app_batch(self, notifications: Sequence[CreateNotificationDTO]) -> None: ...


class LoggingSenders:
    """Placeholder providers that only log what would have been sent."""

    async def send_push_batch(
        self, user_id: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None:
        logger.info("Sending %s push notifications to user %s", len(notifications), user_id)

    async def send_email_batch(
        self, template: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None:
        logger.info(
            "Sending %s email notifications with template %s", len(notifications), template
        )

    async def send_sms(self, notification: CreateNotificationDTO) -> None:
        logger.info("Sending SMS notification to user %s", notification.user_id)

    async def send_in_app_batch(self, notifications: Sequence[CreateNotificationDTO]) -> None:
        logger.info("Sending %s in-app notifications", len(notifications))


class DeliverySenders(LoggingSenders):
    """Providers backed by SendGrid for email and websockets for in-app.

    Push and SMS keep the logging placeholders. Email falls back to them too
    when no SendGrid credentials are configured.
    """

    def __init__(
        self,
        *,
        publisher: InAppPublisher | None = None,
        email_enabled: bool = False,
    ) -> None:
        self._publisher = publisher
        self._email_enabled = email_enabled

    async def send_email_batch(
        self, template: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None:
        if not self._email_enabled:
            await super().send_email_batch(template, notifications)
            return

        failed: list[CreateNotificationDTO] = []
        for notification in notifications:
            recipient = notification.metadata.get(EMAIL_METADATA_KEY)
            if not recipient:
                logger.warning(
                    "No email address for user %s; skipping %s email",
                    notification.user_id,
                    template,
                )
                continue
            body = render_notification_email(
                notification.title,
                notification.content,
                notification.action_text,
                notification.action_url,
            )
            sent = await to_thread.run_sync(send_email, notification.title, body, str(recipient))
            if not sent:
                failed.append(notification)

        if failed:
            users = ", ".join(notification.user_id for notification in failed)
            raise PartialDeliveryError(
                f"Email template {template} failed for users: {users}", failed
            )

    async def send_in_app_batch(self, notifications: Sequence[CreateNotificationDTO]) -> None:
        if self._publisher is None:
            await super().send_in_app_batch(notifications)
            return
        await self._publisher.publish(notifications)


__all__ = ["DeliverySenders", "LoggingSenders", "NotificationSenders"]
