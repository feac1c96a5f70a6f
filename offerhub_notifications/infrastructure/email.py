"""Utility helpers for sending notification emails via SendGrid."""

from __future__ import annotations

import html
import json
import logging
from typing import Any

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from offerhub_notifications.config import get_settings

logger = logging.getLogger(__name__)


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages: list[str] = []
            for item in errors:
                if not isinstance(item, dict):
                    continue
                message = item.get("message")
                field = item.get("field")
                if message and field:
                    messages.append(f"{message} (field: {field})")
                elif message:
                    messages.append(str(message))
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    if isinstance(parsed, list):
        return "; ".join(str(item) for item in parsed)

    return None


def _log_sendgrid_failure(status_code: Any, body: Any, recipient: str) -> None:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        logger.error(
            "SendGrid request for %s failed with status %s: %s", recipient, status_code, details
        )
    elif status_code:
        logger.error("SendGrid request for %s failed with status %s", recipient, status_code)
    elif details:
        logger.error("SendGrid request for %s failed: %s", recipient, details)
    else:
        logger.error("SendGrid request for %s failed", recipient)


def send_email(subject: str, html_content: str, recipient: str) -> bool:
    """Send an email using the configured SendGrid credentials.

    Blocking; async callers should run it in a worker thread.
    """

    settings = get_settings()
    if not settings.email_enabled:
        logger.info("SendGrid configuration incomplete; skipping email delivery")
        return False

    message = Mail(
        from_email=settings.sendgrid_sender,
        to_emails=recipient,
        subject=subject,
        html_content=html_content,
    )

    try:
        client = SendGridAPIClient(settings.sendgrid_api_key)
        response = client.send(message)
    except Exception as exc:  # pragma: no cover - network failures depend on environment
        _log_sendgrid_failure(getattr(exc, "status_code", None), getattr(exc, "body", None), recipient)
        return False

    status_code = getattr(response, "status_code", None)
    if not isinstance(status_code, int) or not 200 <= status_code < 300:
        _log_sendgrid_failure(status_code, getattr(response, "body", None), recipient)
        return False

    return True


def render_notification_email(
    title: str,
    content: str,
    action_text: str | None = None,
    action_url: str | None = None,
) -> str:
    """Build the HTML body used for notification emails."""

    parts = [
        f"<h2>{html.escape(title)}</h2>",
        f"<p>{html.escape(content)}</p>",
    ]
    if action_url:
        label = html.escape(action_text or "View")
        parts.append(f'<p><a href="{html.escape(action_url, quote=True)}">{label}</a></p>')
    return "".join(parts)


__all__ = ["render_notification_email", "send_email"]
