"""FastAPI dependency utilities."""

from __future__ import annotations

from fastapi import HTTPException, Request, status
from starlette.requests import HTTPConnection

from offerhub_notifications.infrastructure.notifications import NotificationServices

SERVICES_STATE_KEY = "notification_services"


def services_from_connection(connection: HTTPConnection) -> NotificationServices | None:
    return getattr(connection.app.state, SERVICES_STATE_KEY, None)


def get_notification_services(request: Request) -> NotificationServices:
    """Return the services built by the application lifespan."""

    services = services_from_connection(request)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification services are not initialised",
        )
    return services


__all__ = ["SERVICES_STATE_KEY", "get_notification_services", "services_from_connection"]
