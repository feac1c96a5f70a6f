"""Content templates, truncation and validation for notification payloads."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from offerhub_notifications.domain.entities import CreateNotificationDTO, NotificationType

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 1000
ELLIPSIS = "..."


@dataclass(frozen=True)
class NotificationContent:
    """Rendered text for a notification."""

    title: str
    content: str
    action_text: str | None = None
    action_url: str | None = None


def _value(data: Mapping[str, Any], key: str, fallback: str) -> str:
    value = data.get(key)
    if value is None or value == "":
        return fallback
    return str(value)


def generate_notification_content(
    type: NotificationType, data: Mapping[str, Any] | None = None
) -> NotificationContent:
    """Render title, body and call to action for a notification of ``type``."""

    data = data or {}

    def v(key: str, fallback: str = "") -> str:
        return _value(data, key, fallback)

    if type is NotificationType.NEW_MESSAGE:
        return NotificationContent(
            title="New Message",
            content=f"You have a new message from {v('senderName', 'a user')}",
            action_text="View Message",
            action_url=f"/messages/{v('conversationId')}",
        )
    if type is NotificationType.PAYMENT_RECEIVED:
        return NotificationContent(
            title="Payment Received",
            content=(
                f"{v('amount', 'Payment')} has been credited to your account for "
                f"{v('projectName', 'project')}"
            ),
            action_text="View Transaction",
            action_url=f"/wallet/transactions/{v('transactionId')}",
        )
    if type is NotificationType.PAYMENT_SENT:
        return NotificationContent(
            title="Payment Sent",
            content=(
                f"Payment of {v('amount', 'amount')} sent successfully to "
                f"{v('recipientName', 'recipient')}"
            ),
            action_text="View Transaction",
            action_url=f"/wallet/transactions/{v('transactionId')}",
        )
    if type is NotificationType.MILESTONE_APPROVED:
        return NotificationContent(
            title="Milestone Approved",
            content=(
                f"Milestone \"{v('milestoneName', 'milestone')}\" has been approved by "
                f"{v('clientName', 'client')}"
            ),
            action_text="View Project",
            action_url=f"/projects/{v('projectId')}",
        )
    if type is NotificationType.MILESTONE_REJECTED:
        return NotificationContent(
            title="Milestone Rejected",
            content=(
                f"Milestone \"{v('milestoneName', 'milestone')}\" needs revision. "
                f"{v('feedback', 'Please review the feedback.')}"
            ),
            action_text="View Feedback",
            action_url=f"/projects/{v('projectId')}/milestones/{v('milestoneId')}",
        )
    if type is NotificationType.DISPUTE_OPENED:
        return NotificationContent(
            title="Dispute Opened",
            content=(
                f"A dispute has been opened for project \"{v('projectName', 'project')}\" "
                f"by {v('disputantName', 'a party')}"
            ),
            action_text="View Dispute",
            action_url=f"/disputes/{v('disputeId')}",
        )
    if type is NotificationType.DISPUTE_RESOLVED:
        return NotificationContent(
            title="Dispute Resolved",
            content=(
                f"Dispute for \"{v('projectName', 'project')}\" has been resolved in favor of "
                f"{v('winnerName', 'one party')}"
            ),
            action_text="View Resolution",
            action_url=f"/disputes/{v('disputeId')}",
        )
    if type is NotificationType.DEADLINE_REMINDER:
        return NotificationContent(
            title="Deadline Reminder",
            content=(
                f"Reminder: {v('projectName', 'Project')} deadline is approaching "
                f"({v('daysLeft', 'X')} days left)"
            ),
            action_text="View Project",
            action_url=f"/projects/{v('projectId')}",
        )
    if type is NotificationType.SECURITY_ALERT:
        return NotificationContent(
            title="Security Alert",
            content=(
                f"Security alert: {v('alertType', 'Suspicious activity')} detected from "
                f"{v('location', 'unknown location')}"
            ),
            action_text="Secure Account",
            action_url="/security",
        )
    if type is NotificationType.FEATURE_ANNOUNCEMENT:
        return NotificationContent(
            title="New Feature Available",
            content=f"{v('featureName', 'A new feature')} is now available on OfferHub",
            action_text="Learn More",
            action_url=v("featureUrl", "/features"),
        )

    return NotificationContent(
        title="Notification",
        content="You have a new notification",
        action_text="View",
        action_url="/notifications",
    )


def optimize_notification_content(content: str, max_length: int = 160) -> str:
    """Shorten ``content`` to ``max_length`` characters, ellipsis included.

    The cut happens at the last space when that space sits at or beyond 80% of
    ``max_length``; otherwise the text is cut mid-word.
    """

    if len(content) <= max_length:
        return content

    truncated = content[: max(max_length - len(ELLIPSIS), 0)]
    last_space = truncated.rfind(" ")
    if last_space >= max_length * 0.8:
        return truncated[:last_space] + ELLIPSIS
    return truncated + ELLIPSIS


def validate_notification_data(data: CreateNotificationDTO) -> list[str]:
    """Return human readable problems found in ``data`` (empty when valid)."""

    errors: list[str] = []

    if not data.user_id or not data.user_id.strip():
        errors.append("User ID is required")
    if not data.type:
        errors.append("Notification type is required")
    if not data.channel:
        errors.append("Notification channel is required")
    if not data.title or not data.title.strip():
        errors.append("Title is required")
    if not data.content or not data.content.strip():
        errors.append("Content is required")
    if data.title and len(data.title) > MAX_TITLE_LENGTH:
        errors.append(f"Title must be less than {MAX_TITLE_LENGTH} characters")
    if data.content and len(data.content) > MAX_CONTENT_LENGTH:
        errors.append(f"Content must be less than {MAX_CONTENT_LENGTH} characters")

    return errors


__all__ = [
    "NotificationContent",
    "generate_notification_content",
    "optimize_notification_content",
    "validate_notification_data",
]
