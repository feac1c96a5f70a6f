"""Tests for rolling performance metrics and alerts."""

from __future__ import annotations

from fakes import FakeClock

from offerhub_notifications.infrastructure.notifications import MetricSummary, PerformanceMonitor


def test_summary_over_rolling_window() -> None:
    monitor = PerformanceMonitor(window_size=3)
    for value in (10, 20, 30, 40):
        monitor.record_metric("processing_time", value)

    summary = monitor.get_metric("processing_time")

    assert summary == MetricSummary(avg=30, min=20, max=40, count=3)
    assert monitor.get_metric("unknown") == MetricSummary()
    assert monitor.has_metric("processing_time")
    assert not monitor.has_metric("unknown")


def test_alerts_fire_for_every_listener_above_threshold() -> None:
    monitor = PerformanceMonitor()
    first: list[str] = []
    second: list[str] = []
    monitor.add_alert(first.append)
    monitor.add_alert(second.append)

    monitor.record_metric("error_rate", 0.1)
    monitor.record_metric("error_rate", 0.25)
    monitor.record_metric("queue_size", 6000)
    monitor.record_metric("processing_time", 5001)

    expected = [
        "High error rate detected: 25.00%",
        "Large queue size detected: 6000 notifications",
        "High processing time detected: 5001ms",
    ]
    assert first == expected
    assert second == expected


def test_failing_listener_does_not_block_the_others() -> None:
    monitor = PerformanceMonitor()
    received: list[str] = []

    def broken(message: str) -> None:
        raise RuntimeError("listener crashed")

    monitor.add_alert(broken)
    monitor.add_alert(received.append)
    monitor.notify("Notification new_message for user u1 permanently failed")

    assert received == ["Notification new_message for user u1 permanently failed"]


def test_cooldown_suppresses_repeated_alerts() -> None:
    clock = FakeClock()
    monitor = PerformanceMonitor(alert_cooldown=60, clock=clock)
    received: list[str] = []
    monitor.add_alert(received.append)

    monitor.record_metric("queue_size", 5001)
    clock.advance(30)
    monitor.record_metric("queue_size", 5002)
    clock.advance(31)
    monitor.record_metric("queue_size", 5003)

    assert received == [
        "Large queue size detected: 5001 notifications",
        "Large queue size detected: 5003 notifications",
    ]
    assert monitor.metric_names() == ["queue_size"]
