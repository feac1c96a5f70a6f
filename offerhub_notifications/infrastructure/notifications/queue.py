"""Priority-ordered, rate-limited dispatcher for notification creation requests."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable, Deque, Iterable, Mapping, Sequence

from offerhub_notifications.application.use_cases.notifications import group_by
from offerhub_notifications.config import Settings
from offerhub_notifications.domain.entities import (
    CreateNotificationDTO,
    NotificationBatch,
    NotificationChannel,
    QueuedNotification,
    priority_rank,
)

from .circuit_breaker import CircuitBreaker
from .errors import CircuitBreakerOpenError, PartialDeliveryError, SendTimeoutError
from .monitor import PerformanceMonitor
from .rate_limiter import FixedWindowRateLimiter
from .senders import LoggingSenders, NotificationSenders

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

RECENT_BATCH_LIMIT = 50
DEAD_LETTER_LIMIT = 1000


@dataclass(frozen=True)
class QueueConfig:
    """Tuning knobs of :class:`NotificationQueue`. Durations are in seconds."""

    batch_size: int = 100
    max_concurrent_batches: int = 5
    retry_attempts: int = 3
    retry_delay: float = 1.0
    rate_limit_per_minute: int = 1000
    queue_max_size: int = 10000
    sms_interval: float = 0.1
    send_timeout: float | None = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "QueueConfig":
        return cls(
            batch_size=settings.queue_batch_size,
            max_concurrent_batches=settings.queue_max_concurrent_batches,
            retry_attempts=settings.queue_retry_attempts,
            retry_delay=settings.queue_retry_delay_seconds,
            rate_limit_per_minute=settings.queue_rate_limit_per_minute,
            queue_max_size=settings.queue_max_size,
            sms_interval=settings.sms_interval_seconds,
            send_timeout=settings.send_timeout_seconds,
        )

    @property
    def dispatch_interval(self) -> float:
        """Pause between two batches, spreading the minute budget evenly."""

        return 60.0 / self.rate_limit_per_minute


@dataclass(frozen=True)
class EnqueueResult:
    accepted: int
    dropped: int


@dataclass
class _ChannelOutcome:
    calls: int = 0
    failed_calls: int = 0
    sent: list[QueuedNotification] = field(default_factory=list)
    failed: list[QueuedNotification] = field(default_factory=list)
    deferred: list[QueuedNotification] = field(default_factory=list)

    def unsettled(self, items: Iterable[QueuedNotification]) -> list[QueuedNotification]:
        settled = {id(item) for item in (*self.sent, *self.failed, *self.deferred)}
        return [item for item in items if id(item) not in settled]


class NotificationQueue:
    """Buffer creation requests and hand them to per-channel providers.

    A single worker task drains the buffer in priority order (urgent first,
    FIFO within a tier), ``batch_size`` items at a time. Provider calls are
    capped per fixed one-minute bucket. Items of a failed provider call go
    back to the front of the buffer until ``retry_attempts`` retries are
    spent, after which they are kept in :attr:`dead_letters` and reported to
    the monitor. A call refused by an open channel breaker is not an attempt:
    its items wait in the buffer until the breaker admits a trial call.

    When the buffer outgrows ``queue_max_size`` the tail (lowest priority,
    newest) is discarded.
    """

    def __init__(
        self,
        senders: NotificationSenders | None = None,
        config: QueueConfig | None = None,
        *,
        monitor: PerformanceMonitor | None = None,
        breakers: Mapping[NotificationChannel, CircuitBreaker] | None = None,
        clock: Callable[[], float] = time.time,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._senders: NotificationSenders = senders or LoggingSenders()
        self._config = config or QueueConfig()
        self._monitor = monitor
        self._breakers = dict(breakers or {})
        self._clock = clock
        self._sleep = sleep
        self._rate_limiter = FixedWindowRateLimiter(
            self._config.rate_limit_per_minute, clock=clock
        )
        self._buffer: list[QueuedNotification] = []
        self._processing = False
        self._worker: asyncio.Task[None] | None = None
        self._dead_letters: Deque[QueuedNotification] = deque(maxlen=DEAD_LETTER_LIMIT)
        self._recent_batches: Deque[NotificationBatch] = deque(maxlen=RECENT_BATCH_LIMIT)

    # -- inspection ---------------------------------------------------------

    @property
    def config(self) -> QueueConfig:
        return self._config

    @property
    def rate_limiter(self) -> FixedWindowRateLimiter:
        return self._rate_limiter

    @property
    def processing(self) -> bool:
        return self._processing

    @property
    def size(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)

    def pending(self) -> list[CreateNotificationDTO]:
        """Buffered requests in the order they will be dispatched."""

        return [item.dto for item in self._buffer]

    @property
    def dead_letters(self) -> list[QueuedNotification]:
        return list(self._dead_letters)

    @property
    def recent_batches(self) -> list[NotificationBatch]:
        return list(self._recent_batches)

    # -- producer side ------------------------------------------------------

    def enqueue(self, notifications: Iterable[CreateNotificationDTO]) -> EnqueueResult:
        """Add ``notifications`` to the buffer and wake the worker.

        Outside a running event loop the items are only buffered; the worker
        starts on the next :meth:`enqueue` or :meth:`start` made from a loop.
        """

        incoming = [QueuedNotification(dto) for dto in notifications]
        self._buffer.extend(incoming)
        self._buffer.sort(key=lambda item: priority_rank(item.dto.priority))
        dropped = self._trim()
        self._record("queue_size", len(self._buffer))

        if incoming:
            self.start()
        return EnqueueResult(accepted=len(incoming), dropped=dropped)

    def start(self) -> bool:
        """Launch the worker task if there is work and none is running."""

        if self._processing or not self._buffer:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; %s notifications stay buffered", len(self._buffer))
            return False

        self._processing = True
        self._worker = loop.create_task(self._process(), name="notification-queue")
        return True

    async def join(self) -> None:
        """Wait until the current worker has drained the buffer."""

        worker = self._worker
        if worker is not None:
            await worker

    async def stop(self) -> None:
        """Cancel the worker, aborting in-flight provider calls.

        Requests still buffered stay in place for a later :meth:`start`, and so
        do the unsent requests of the batch that was in flight.
        """

        worker = self._worker
        if worker is None:
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        logger.info("Notification queue stopped with %s notifications pending", len(self._buffer))

    def status(self) -> dict[str, Any]:
        return {
            "size": len(self._buffer),
            "processing": self._processing,
            "dead_letters": len(self._dead_letters),
            "rate_limit_per_minute": self._config.rate_limit_per_minute,
            "current_bucket_count": self._rate_limiter.count(),
            "breakers": {
                channel.value: breaker.get_state().value
                for channel, breaker in self._breakers.items()
            },
            "recent_batches": [batch.summary() for batch in self._recent_batches],
        }

    # -- worker -------------------------------------------------------------

    async def _process(self) -> None:
        try:
            while self._buffer:
                if self._rate_limiter.is_limited():
                    await self._sleep(self._config.retry_delay)
                    continue

                items = self._take_batch()
                if not items:
                    await self._sleep(self._resume_delay())
                    continue

                await self._process_batch(items)
                await self._sleep(self._config.dispatch_interval)
        finally:
            self._processing = False
            self._worker = None

    def _take_batch(self) -> list[QueuedNotification]:
        """Pop up to ``batch_size`` items, skipping channels whose breaker is open."""

        taken: list[QueuedNotification] = []
        kept: list[QueuedNotification] = []
        ready: dict[NotificationChannel, bool] = {}
        for item in self._buffer:
            channel = item.dto.channel
            if channel not in ready:
                ready[channel] = self._channel_ready(channel)
            if ready[channel] and len(taken) < self._config.batch_size:
                taken.append(item)
            else:
                kept.append(item)
        self._buffer[:] = kept
        return taken

    def _channel_ready(self, channel: NotificationChannel) -> bool:
        breaker = self._breakers.get(channel)
        return breaker is None or breaker.allows_request()

    def _resume_delay(self) -> float:
        channels = {item.dto.channel for item in self._buffer}
        waits = [
            self._breakers[channel].retry_after()
            for channel in channels
            if channel in self._breakers
        ]
        return max(min(waits, default=0.0), self._config.dispatch_interval)

    async def _process_batch(self, items: list[QueuedNotification]) -> NotificationBatch:
        batch = NotificationBatch(notifications=[item.dto for item in items])
        batch.start()
        self._recent_batches.append(batch)
        started = self._clock()

        groups = group_by(items, lambda item: item.dto.channel)
        outcomes = {channel: _ChannelOutcome() for channel in groups}
        limiter = asyncio.Semaphore(self._config.max_concurrent_batches)

        async def run(channel: NotificationChannel, grouped: list[QueuedNotification]) -> None:
            async with limiter:
                await self._dispatch_channel(channel, grouped, outcomes[channel])

        try:
            results = await asyncio.gather(
                *(run(channel, grouped) for channel, grouped in groups.items()),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, asyncio.CancelledError):
                    raise result
        except asyncio.CancelledError:
            self._abort_batch(batch, items, outcomes.values())
            raise

        for (channel, grouped), result in zip(groups.items(), results):
            if isinstance(result, BaseException):
                logger.error("Dispatch of %s notifications crashed: %s", channel.value, result)
                outcome = outcomes[channel]
                outcome.calls += 1
                outcome.failed_calls += 1
                outcome.failed.extend(outcome.unsettled(grouped))

        calls = sum(outcome.calls for outcome in outcomes.values())
        failed_calls = sum(outcome.failed_calls for outcome in outcomes.values())
        failed_ids = {id(item) for outcome in outcomes.values() for item in outcome.failed}
        deferred_ids = {id(item) for outcome in outcomes.values() for item in outcome.deferred}
        self._requeue(items, failed_ids, deferred_ids)

        batch.record_success(len(items) - len(failed_ids) - len(deferred_ids))
        batch.record_failure(len(failed_ids))
        batch.finish()

        self._record("processing_time", (self._clock() - started) * 1000)
        self._record("error_rate", failed_calls / calls if calls else 0.0)
        self._record("queue_size", len(self._buffer))
        return batch

    async def _dispatch_channel(
        self,
        channel: NotificationChannel,
        items: list[QueuedNotification],
        outcome: _ChannelOutcome,
    ) -> None:
        async def call(
            label: str,
            unit: Sequence[QueuedNotification],
            send: Callable[[], Awaitable[None]],
            *,
            rate_limited: bool = True,
        ) -> None:
            if not self._channel_ready(channel):
                logger.warning("Circuit breaker for %s is open; deferring %s", channel.value, label)
                outcome.deferred.extend(unit)
                return

            failed: list[QueuedNotification] = []
            try:
                await self._call(channel, label, send, rate_limited=rate_limited)
            except CircuitBreakerOpenError as exc:
                logger.warning("Deferring %s: %s", label, exc)
                outcome.deferred.extend(unit)
                return
            except PartialDeliveryError as exc:
                logger.warning("Delivery of %s partially failed: %s", label, exc)
                failed_dtos = {id(dto) for dto in exc.failed}
                failed = [item for item in unit if id(item.dto) in failed_dtos]
            except Exception as exc:
                logger.warning("Delivery of %s failed: %s", label, exc)
                failed = list(unit)

            outcome.calls += 1
            if failed:
                outcome.failed_calls += 1
                outcome.failed.extend(failed)
            failed_ids = {id(item) for item in failed}
            outcome.sent.extend(item for item in unit if id(item) not in failed_ids)

        if channel is NotificationChannel.PUSH:
            for user_id, unit in group_by(items, lambda item: item.dto.user_id).items():
                send = partial(self._senders.send_push_batch, user_id, [i.dto for i in unit])
                await call(f"push batch for user {user_id}", unit, send)
        elif channel is NotificationChannel.EMAIL:
            for template, unit in group_by(items, lambda item: item.dto.type.value).items():
                send = partial(self._senders.send_email_batch, template, [i.dto for i in unit])
                await call(f"email batch for template {template}", unit, send)
        elif channel is NotificationChannel.SMS:
            for index, item in enumerate(items):
                if index:
                    await self._sleep(self._config.sms_interval)
                send = partial(self._senders.send_sms, item.dto)
                await call(f"sms for user {item.dto.user_id}", [item], send)
        elif channel is NotificationChannel.IN_APP:
            send = partial(self._senders.send_in_app_batch, [i.dto for i in items])
            await call("in-app batch", items, send, rate_limited=False)
        else:  # pragma: no cover - exhaustive over NotificationChannel
            raise ValueError(f"Unsupported channel: {channel!r}")

    async def _call(
        self,
        channel: NotificationChannel,
        label: str,
        send: Callable[[], Awaitable[None]],
        *,
        rate_limited: bool,
    ) -> None:
        if rate_limited:
            await self._acquire_slot()

        async def attempt() -> None:
            await self._with_timeout(label, send())

        breaker = self._breakers.get(channel)
        if breaker is None:
            await attempt()
        else:
            await breaker.execute(attempt)

    async def _acquire_slot(self) -> None:
        while self._rate_limiter.is_limited():
            await self._sleep(self._config.retry_delay)
        self._rate_limiter.record()

    async def _with_timeout(self, label: str, operation: Awaitable[None]) -> None:
        timeout = self._config.send_timeout
        if timeout is None:
            await operation
            return
        try:
            await asyncio.wait_for(operation, timeout)
        except asyncio.TimeoutError:
            raise SendTimeoutError(label, timeout) from None

    # -- bookkeeping --------------------------------------------------------

    def _requeue(
        self,
        items: list[QueuedNotification],
        failed_ids: set[int],
        deferred_ids: set[int],
    ) -> None:
        """Put deferred and retryable items back at the front, in batch order."""

        requeued: list[QueuedNotification] = []
        for item in items:
            if id(item) in deferred_ids:
                requeued.append(item)
            elif id(item) in failed_ids:
                if item.attempt < self._config.retry_attempts:
                    requeued.append(item.next_attempt())
                else:
                    self._dead_letter(item)
        if requeued:
            logger.info("Re-queueing %s notifications", len(requeued))
            self._buffer[:0] = requeued

    def _abort_batch(
        self,
        batch: NotificationBatch,
        items: list[QueuedNotification],
        outcomes: Iterable[_ChannelOutcome],
    ) -> None:
        sent_ids = {id(item) for outcome in outcomes for item in outcome.sent}
        unsent = [item for item in items if id(item) not in sent_ids]
        self._buffer[:0] = unsent
        batch.record_success(len(items) - len(unsent))
        batch.record_failure(len(unsent))
        batch.finish()
        logger.warning(
            "Dispatch cancelled; %s unsent notifications returned to the queue", len(unsent)
        )

    def _dead_letter(self, item: QueuedNotification) -> None:
        self._dead_letters.append(item)
        message = (
            f"Notification {item.dto.type.value} for user {item.dto.user_id} via "
            f"{item.dto.channel.value} permanently failed after {item.attempt + 1} attempts"
        )
        logger.error(message)
        if self._monitor is not None:
            self._monitor.record_metric("permanent_failures", 1)
            self._monitor.notify(message)

    def _trim(self) -> int:
        overflow = len(self._buffer) - self._config.queue_max_size
        if overflow <= 0:
            return 0
        del self._buffer[self._config.queue_max_size :]
        logger.warning(
            "Notification queue full (%s); dropped %s lowest-priority notifications",
            self._config.queue_max_size,
            overflow,
        )
        self._record("dropped_notifications", overflow)
        return overflow

    def _record(self, name: str, value: float) -> None:
        if self._monitor is not None:
            self._monitor.record_metric(name, value)


__all__ = ["EnqueueResult", "NotificationQueue", "QueueConfig"]
