"""Tests for the priority-ordered, rate-limited notification queue."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Sequence

import pytest
from fakes import FailingTimes, FakeClock, FakeSleep, RecordingSenders, make_request

from offerhub_notifications.config import Settings
from offerhub_notifications.domain.entities import (
    BatchStatus,
    CreateNotificationDTO,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from offerhub_notifications.infrastructure.notifications import (
    CircuitBreaker,
    CircuitState,
    EnqueueResult,
    NotificationQueue,
    PerformanceMonitor,
    QueueConfig,
)

URGENT = NotificationPriority.URGENT
HIGH = NotificationPriority.HIGH
NORMAL = NotificationPriority.NORMAL
LOW = NotificationPriority.LOW


def _queue(senders, config: QueueConfig, clock: FakeClock, **kwargs) -> NotificationQueue:
    return NotificationQueue(senders, config, clock=clock, sleep=FakeSleep(clock), **kwargs)


def test_pending_order_is_priority_then_arrival() -> None:
    queue = NotificationQueue(RecordingSenders(), QueueConfig())

    queue.enqueue(
        [
            make_request("a", priority=LOW),
            make_request("b", priority=URGENT),
            make_request("c", priority=NORMAL),
        ]
    )
    queue.enqueue([make_request("d", priority=URGENT), make_request("e", priority=None)])

    assert [request.user_id for request in queue.pending()] == ["b", "d", "c", "e", "a"]
    assert queue.processing is False
    assert len(queue) == 5


def test_overflow_drops_lowest_priority_tail() -> None:
    monitor = PerformanceMonitor()
    queue = NotificationQueue(RecordingSenders(), QueueConfig(queue_max_size=3), monitor=monitor)

    result = queue.enqueue(
        [
            make_request("low-1", priority=LOW),
            make_request("urgent-1", priority=URGENT),
            make_request("normal-1", priority=NORMAL),
            make_request("low-2", priority=LOW),
            make_request("high-1", priority=HIGH),
        ]
    )

    assert result == EnqueueResult(accepted=5, dropped=2)
    assert queue.size == 3
    assert [request.user_id for request in queue.pending()] == ["urgent-1", "high-1", "normal-1"]
    assert monitor.get_metric("dropped_notifications").max == 2
    assert monitor.get_metric("queue_size").max == 3


def test_worker_sends_urgent_before_low_and_records_batches() -> None:
    clock = FakeClock()
    senders = RecordingSenders(clock=clock)
    monitor = PerformanceMonitor()
    config = QueueConfig(batch_size=2, rate_limit_per_minute=60, send_timeout=None)
    sleep = FakeSleep(clock)
    queue = NotificationQueue(senders, config, monitor=monitor, clock=clock, sleep=sleep)

    async def scenario() -> None:
        result = queue.enqueue(
            [
                make_request("low-1", priority=LOW),
                make_request("urgent-1", priority=URGENT),
                make_request("low-2", priority=LOW),
                make_request("urgent-2", priority=URGENT),
                make_request("urgent-3", priority=URGENT),
            ]
        )
        assert result == EnqueueResult(accepted=5, dropped=0)
        assert queue.processing is True
        await queue.join()

    asyncio.run(scenario())

    assert [key for _, key, _ in senders.calls] == [
        "urgent-1",
        "urgent-2",
        "urgent-3",
        "low-1",
        "low-2",
    ]
    assert [batch.total_count for batch in queue.recent_batches] == [2, 2, 1]
    assert all(batch.status is BatchStatus.COMPLETED for batch in queue.recent_batches)
    assert sleep.calls == [1.0, 1.0, 1.0]
    assert queue.processing is False
    assert queue.size == 0
    assert monitor.get_metric("error_rate").max == 0
    assert monitor.get_metric("processing_time").count == 3


def test_no_minute_bucket_exceeds_the_rate_limit() -> None:
    clock = FakeClock()
    senders = RecordingSenders(clock=clock)
    config = QueueConfig(
        batch_size=10, rate_limit_per_minute=2, retry_delay=5.0, send_timeout=None
    )
    queue = _queue(senders, config, clock)

    async def scenario() -> None:
        queue.enqueue([make_request(f"user-{index}") for index in range(5)])
        await queue.join()

    asyncio.run(scenario())

    per_bucket = Counter(int(moment // 60) for moment in senders.call_times)
    assert len(senders.calls) == 5
    assert max(per_bucket.values()) <= 2
    assert sorted(per_bucket) == [0, 1, 2]


def test_in_app_delivery_does_not_consume_rate_limit_slots() -> None:
    clock = FakeClock()
    senders = RecordingSenders(clock=clock)
    queue = _queue(senders, QueueConfig(rate_limit_per_minute=1, send_timeout=None), clock)

    async def scenario() -> None:
        queue.enqueue(
            [make_request(f"user-{i}", channel=NotificationChannel.IN_APP) for i in range(3)]
        )
        await queue.join()

    asyncio.run(scenario())

    assert len(senders.calls) == 1
    channel, _, items = senders.calls[0]
    assert channel == "in_app"
    assert len(items) == 3
    assert queue.rate_limiter.history() == {}


def test_push_groups_by_user_and_email_by_template() -> None:
    clock = FakeClock()
    senders = RecordingSenders(clock=clock)
    queue = _queue(senders, QueueConfig(send_timeout=None), clock)

    async def scenario() -> None:
        queue.enqueue(
            [
                make_request("user-1"),
                make_request("user-2"),
                make_request("user-1"),
                make_request("user-1", channel=NotificationChannel.EMAIL),
                make_request("user-2", channel=NotificationChannel.EMAIL),
                make_request(
                    "user-1",
                    channel=NotificationChannel.EMAIL,
                    type=NotificationType.PAYMENT_RECEIVED,
                ),
            ]
        )
        await queue.join()

    asyncio.run(scenario())

    push = {key: len(items) for _, key, items in senders.calls_for("push")}
    email = {key: len(items) for _, key, items in senders.calls_for("email")}
    assert push == {"user-1": 2, "user-2": 1}
    assert email == {"new_message": 2, "payment_received": 1}


def test_failed_call_is_retried_without_resending_other_groups() -> None:
    clock = FakeClock()
    senders = RecordingSenders(clock=clock, fail=FailingTimes("user-1", 2))
    queue = _queue(senders, QueueConfig(retry_attempts=3, send_timeout=None), clock)

    async def scenario() -> None:
        queue.enqueue([make_request("user-1"), make_request("user-2")])
        await queue.join()

    asyncio.run(scenario())

    assert [key for _, key, _ in senders.calls] == ["user-1", "user-2", "user-1", "user-1"]
    assert [batch.status for batch in queue.recent_batches] == [
        BatchStatus.FAILED,
        BatchStatus.FAILED,
        BatchStatus.COMPLETED,
    ]
    assert queue.dead_letters == []


def test_exhausted_retries_move_to_dead_letters_and_alert() -> None:
    clock = FakeClock()
    senders = RecordingSenders(clock=clock, fail=lambda channel, key: channel == "sms")
    monitor = PerformanceMonitor()
    alerts: list[str] = []
    monitor.add_alert(alerts.append)
    queue = _queue(
        senders, QueueConfig(retry_attempts=2, send_timeout=None), clock, monitor=monitor
    )

    async def scenario() -> None:
        queue.enqueue([make_request("user-9", channel=NotificationChannel.SMS)])
        await queue.join()

    asyncio.run(scenario())

    assert len(senders.calls_for("sms")) == 3
    [dead] = queue.dead_letters
    assert dead.attempt == 2
    assert dead.dto.user_id == "user-9"
    assert any("permanently failed after 3 attempts" in alert for alert in alerts)
    assert "High error rate detected: 100.00%" in alerts
    assert monitor.get_metric("permanent_failures").count == 1


class _SlowSmsSenders(RecordingSenders):
    async def send_sms(self, notification: CreateNotificationDTO) -> None:
        await super().send_sms(notification)
        await asyncio.sleep(1)


def test_timeout_feeds_the_channel_breaker(caplog: pytest.LogCaptureFixture) -> None:
    clock = FakeClock()
    senders = _SlowSmsSenders(clock=clock)
    breaker = CircuitBreaker(threshold=1, timeout=60, name="sms", clock=clock)
    queue = _queue(
        senders,
        QueueConfig(retry_attempts=0, send_timeout=0.01),
        clock,
        breakers={NotificationChannel.SMS: breaker},
    )

    async def scenario() -> None:
        queue.enqueue(
            [
                make_request("user-a", channel=NotificationChannel.SMS),
                make_request("user-b", channel=NotificationChannel.SMS),
            ]
        )
        await queue.join()

    with caplog.at_level(logging.WARNING):
        asyncio.run(scenario())

    assert [key for _, key, _ in senders.calls_for("sms")] == ["user-a", "user-b"]
    assert breaker.state is CircuitState.OPEN
    assert [item.dto.user_id for item in queue.dead_letters] == ["user-a", "user-b"]
    assert "timed out after 0.01s" in caplog.text
    assert "is open" in caplog.text


class _HangingPushSenders(RecordingSenders):
    async def send_push_batch(
        self, user_id: str, notifications: Sequence[CreateNotificationDTO]
    ) -> None:
        await super().send_push_batch(user_id, notifications)
        await asyncio.Event().wait()


def test_stop_cancels_in_flight_delivery() -> None:
    clock = FakeClock()
    senders = _HangingPushSenders(clock=clock)
    queue = _queue(senders, QueueConfig(send_timeout=None), clock)

    async def scenario() -> None:
        queue.enqueue([make_request("user-1"), make_request("user-2")])
        for _ in range(5):
            await asyncio.sleep(0)
        await queue.stop()

    asyncio.run(scenario())

    assert queue.processing is False
    assert [key for _, key, _ in senders.calls] == ["user-1"]
    assert queue.size == 2
    assert [request.user_id for request in queue.pending()] == ["user-1", "user-2"]
    [batch] = queue.recent_batches
    assert batch.status is BatchStatus.FAILED
    assert batch.failed_count == 2


def test_open_breaker_defers_items_until_it_recovers() -> None:
    clock = FakeClock()
    senders = RecordingSenders(clock=clock, fail=FailingTimes("user-1", 1))
    breaker = CircuitBreaker(threshold=1, timeout=60, name="push", clock=clock)
    queue = _queue(
        senders,
        QueueConfig(retry_attempts=3, send_timeout=None),
        clock,
        breakers={NotificationChannel.PUSH: breaker},
    )

    async def scenario() -> None:
        queue.enqueue([make_request("user-1"), make_request("user-2")])
        await queue.join()

    asyncio.run(scenario())

    assert [key for _, key, _ in senders.calls] == ["user-1", "user-1", "user-2"]
    assert senders.call_times[1] > 60
    assert queue.dead_letters == []
    assert breaker.state is CircuitState.CLOSED
    assert queue.rate_limiter.history() == {1: 2}
    assert [batch.status for batch in queue.recent_batches] == [
        BatchStatus.FAILED,
        BatchStatus.COMPLETED,
    ]


def test_open_breaker_on_one_channel_does_not_hold_back_others() -> None:
    clock = FakeClock()
    breaker = CircuitBreaker(threshold=1, timeout=60, name="push", clock=clock)

    async def provider_down() -> None:
        raise RuntimeError("provider down")

    with pytest.raises(RuntimeError):
        asyncio.run(breaker.execute(provider_down))

    senders = RecordingSenders(clock=clock)
    queue = _queue(
        senders,
        QueueConfig(send_timeout=None),
        clock,
        breakers={NotificationChannel.PUSH: breaker},
    )

    async def scenario() -> None:
        queue.enqueue(
            [make_request("user-1"), make_request("user-2", channel=NotificationChannel.SMS)]
        )
        await queue.join()

    asyncio.run(scenario())

    assert [(channel, key) for channel, key, _ in senders.calls] == [
        ("sms", "user-2"),
        ("push", "user-1"),
    ]
    assert senders.call_times[0] == 0
    assert senders.call_times[1] > 60


def test_config_from_settings() -> None:
    settings = Settings(
        queue_batch_size=25,
        queue_rate_limit_per_minute=120,
        queue_retry_attempts=1,
        send_timeout_seconds=5,
    )

    config = QueueConfig.from_settings(settings)

    assert config.batch_size == 25
    assert config.rate_limit_per_minute == 120
    assert config.retry_attempts == 1
    assert config.send_timeout == 5
    assert config.dispatch_interval == 0.5
