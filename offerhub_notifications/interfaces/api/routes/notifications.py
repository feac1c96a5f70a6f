"""Endpoints and websocket handler for notification dispatch."""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from offerhub_notifications.application.use_cases import compose_notifications
from offerhub_notifications.application.use_cases.notifications import (
    export_notifications_to_csv,
    export_notifications_to_json,
    generate_notification_stats,
    validate_notification_data,
)
from offerhub_notifications.domain.entities import CreateNotificationDTO
from offerhub_notifications.infrastructure.notifications import NotificationServices
from offerhub_notifications.interfaces.api.dependencies import (
    get_notification_services,
    services_from_connection,
)
from offerhub_notifications.interfaces.api.schemas import (
    ComposeRequest,
    ComposeResponse,
    EnqueueRequest,
    EnqueueResponse,
    MetricSummaryRead,
    NotificationCollection,
    NotificationCreate,
    NotificationStatsRead,
    QueueStatusRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _submit(services: NotificationServices, requests: list[CreateNotificationDTO]) -> EnqueueResponse:
    result = services.submit(requests)
    return EnqueueResponse(
        accepted=result.accepted,
        dropped=result.dropped,
        queue_size=services.queue.size,
    )


def _dto_to_schema(notification: CreateNotificationDTO) -> NotificationCreate:
    return NotificationCreate.model_validate(notification.to_dict())


@router.post("/queue", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_notifications(
    payload: EnqueueRequest,
    services: NotificationServices = Depends(get_notification_services),
) -> EnqueueResponse:
    """Validate the requests and hand them to the dispatch queue."""

    requests = [item.to_dto() for item in payload.notifications]
    problems: list[dict[str, Any]] = []
    for index, request in enumerate(requests):
        errors = validate_notification_data(request)
        if errors:
            problems.append({"index": index, "errors": errors})
    if problems:
        logger.info("Rejected %s invalid notification requests", len(problems))
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=problems)

    return _submit(services, requests)


@router.get("/queue", response_model=QueueStatusRead)
def read_queue_status(
    services: NotificationServices = Depends(get_notification_services),
) -> QueueStatusRead:
    return QueueStatusRead.model_validate(services.queue.status())


@router.post("/compose", response_model=ComposeResponse)
async def compose(
    payload: ComposeRequest,
    services: NotificationServices = Depends(get_notification_services),
) -> ComposeResponse:
    """Build per-channel notifications for a business event."""

    requests = compose_notifications(
        payload.user_id,
        payload.type,
        payload.data,
        [preference.to_entity() for preference in payload.preferences],
        context=payload.context,
    )
    enqueued = _submit(services, requests) if payload.enqueue and requests else None
    return ComposeResponse(
        notifications=[_dto_to_schema(request) for request in requests],
        enqueued=enqueued,
    )


@router.post("/stats", response_model=NotificationStatsRead)
def notification_stats(payload: NotificationCollection) -> NotificationStatsRead:
    stats = generate_notification_stats(payload.to_entities(), payload.clicked_ids)
    return NotificationStatsRead.model_validate(stats.to_dict())


@router.post("/export")
def export_notifications(
    payload: NotificationCollection,
    export_format: Literal["csv", "json"] = Query(default="csv", alias="format"),
) -> Response:
    """Return the posted notifications as a CSV or JSON download."""

    notifications = payload.to_entities()
    if export_format == "json":
        return Response(
            content=export_notifications_to_json(notifications),
            media_type="application/json",
        )
    return Response(
        content=export_notifications_to_csv(notifications),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="notifications.csv"'},
    )


@router.get("/metrics", response_model=list[str])
def list_metrics(
    services: NotificationServices = Depends(get_notification_services),
) -> list[str]:
    return services.monitor.metric_names()


@router.get("/metrics/{name}", response_model=MetricSummaryRead)
def read_metric(
    name: str,
    services: NotificationServices = Depends(get_notification_services),
) -> MetricSummaryRead:
    if not services.monitor.has_metric(name):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Metric not recorded")
    summary = services.monitor.get_metric(name)
    return MetricSummaryRead(name=name, **summary.to_dict())


@router.get("/cache/{key}")
def read_cached_notification(
    key: str,
    services: NotificationServices = Depends(get_notification_services),
) -> dict[str, Any]:
    cached = services.cache.get(key)
    if cached is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Cached notification not found"
        )
    return cached


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams in-app notifications to one user."""

    user_id = websocket.query_params.get("user_id")
    services = services_from_connection(websocket)
    if not user_id or services is None:
        await websocket.close(code=1008)
        return

    manager = services.manager
    await manager.connect(user_id, websocket)
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        manager.disconnect(user_id, websocket)
    except Exception:  # pragma: no cover - defensive path
        manager.disconnect(user_id, websocket)
        raise


__all__ = ["router"]
