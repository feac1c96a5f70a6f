import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from offerhub_notifications.config import get_settings
from offerhub_notifications.infrastructure.notifications import (
    NotificationServices,
    build_notification_services,
)
from offerhub_notifications.interfaces.api.dependencies import SERVICES_STATE_KEY
from offerhub_notifications.interfaces.api.routes import register_routes


def create_app(services: NotificationServices | None = None) -> FastAPI:
    """Create and configure the notification dispatch FastAPI application.

    ``services`` replaces the components built from settings, which lets tests
    inject fake providers and clocks.
    """

    settings = services.settings if services is not None else get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the dispatch services on startup and drain them on shutdown."""

        active = services or build_notification_services(settings)
        setattr(app.state, SERVICES_STATE_KEY, active)
        try:
            yield
        finally:
            await active.aclose()

    app = FastAPI(title="OfferHub notifications", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
