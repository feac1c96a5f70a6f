"""Domain entity tracking a group of notifications processed together."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from offerhub_notifications.utils import utc_now

from .notification import CreateNotificationDTO


class BatchStatus(str, Enum):
    """Processing state of a :class:`NotificationBatch`."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidBatchTransition(ValueError):
    """Raised when a batch is moved to a state it cannot reach."""


@dataclass
class NotificationBatch:
    """Queued group of notifications with processing counters.

    Status moves ``pending -> processing -> completed | failed`` and never back.
    """

    notifications: list[CreateNotificationDTO]
    id: str = field(default_factory=lambda: f"batch-{uuid.uuid4()}")
    total_count: int = 0
    processed_count: int = 0
    failed_count: int = 0
    status: BatchStatus = BatchStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)
    processed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.total_count:
            self.total_count = len(self.notifications)

    def start(self) -> None:
        self._require(BatchStatus.PENDING, "start")
        self.status = BatchStatus.PROCESSING

    def record_success(self, count: int = 1) -> None:
        self._require(BatchStatus.PROCESSING, "record a success on")
        self.processed_count += count

    def record_failure(self, count: int = 1) -> None:
        self._require(BatchStatus.PROCESSING, "record a failure on")
        self.failed_count += count

    def finish(self, at: datetime | None = None) -> BatchStatus:
        """Close the batch, marking it failed when any item failed."""

        self._require(BatchStatus.PROCESSING, "finish")
        self.status = BatchStatus.FAILED if self.failed_count else BatchStatus.COMPLETED
        self.processed_at = at or utc_now()
        return self.status

    @property
    def is_terminal(self) -> bool:
        return self.status in (BatchStatus.COMPLETED, BatchStatus.FAILED)

    def summary(self) -> dict[str, Any]:
        """Return counters and timestamps without the notification payloads."""

        return {
            "id": self.id,
            "status": self.status.value,
            "total_count": self.total_count,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "created_at": self.created_at.isoformat(),
            "processed_at": self.processed_at.isoformat() if self.processed_at else None,
        }

    def _require(self, expected: BatchStatus, action: str) -> None:
        if self.status is not expected:
            msg = f"Cannot {action} batch {self.id} in status '{self.status.value}'"
            raise InvalidBatchTransition(msg)


__all__ = ["BatchStatus", "InvalidBatchTransition", "NotificationBatch"]
