"""Rolling-window metrics with threshold alerts for the delivery pipeline."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Callable, Deque

logger = logging.getLogger(__name__)

AlertCallback = Callable[[str], None]

DEFAULT_WINDOW_SIZE = 1000


@dataclass(frozen=True)
class MetricSummary:
    avg: float = 0.0
    min: float = 0.0
    max: float = 0.0
    count: int = 0

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class AlertRule:
    """Fire ``message`` when a sample of ``metric`` exceeds ``threshold``."""

    metric: str
    threshold: float
    message: Callable[[float], str]


ALERT_RULES: tuple[AlertRule, ...] = (
    AlertRule(
        "processing_time",
        5000,
        lambda value: f"High processing time detected: {value:g}ms",
    ),
    AlertRule(
        "queue_size",
        5000,
        lambda value: f"Large queue size detected: {value:g} notifications",
    ),
    AlertRule(
        "error_rate",
        0.1,
        lambda value: f"High error rate detected: {value * 100:.2f}%",
    ),
)


class PerformanceMonitor:
    """Keep the last ``window_size`` samples per metric and raise alerts.

    Every listener registered with :meth:`add_alert` is called synchronously
    for each breach. ``alert_cooldown`` (seconds) suppresses repeated alerts of
    the same metric; the default of ``0`` reports every breach.
    """

    def __init__(
        self,
        window_size: int = DEFAULT_WINDOW_SIZE,
        *,
        alert_cooldown: float = 0.0,
        rules: tuple[AlertRule, ...] = ALERT_RULES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_size <= 0:
            raise ValueError("window_size must be greater than zero")
        self._window_size = window_size
        self._alert_cooldown = alert_cooldown
        self._rules = rules
        self._clock = clock
        self._metrics: dict[str, Deque[float]] = {}
        self._alerts: list[AlertCallback] = []
        self._last_alert_at: dict[str, float] = {}

    def record_metric(self, name: str, value: float) -> None:
        series = self._metrics.get(name)
        if series is None:
            series = self._metrics[name] = deque(maxlen=self._window_size)
        series.append(value)
        self._check_alerts(name, value)

    def get_metric(self, name: str) -> MetricSummary:
        values = self._metrics.get(name)
        if not values:
            return MetricSummary()
        return MetricSummary(
            avg=sum(values) / len(values),
            min=min(values),
            max=max(values),
            count=len(values),
        )

    def has_metric(self, name: str) -> bool:
        return bool(self._metrics.get(name))

    def metric_names(self) -> list[str]:
        return sorted(self._metrics)

    def add_alert(self, callback: AlertCallback) -> None:
        self._alerts.append(callback)

    def notify(self, message: str) -> None:
        """Deliver ``message`` to every alert listener."""

        for callback in list(self._alerts):
            try:
                callback(message)
            except Exception:
                logger.exception("Alert listener %r failed", callback)

    def _check_alerts(self, name: str, value: float) -> None:
        for rule in self._rules:
            if rule.metric != name or value <= rule.threshold:
                continue
            if self._in_cooldown(name):
                logger.debug("Alert for %s suppressed by cooldown", name)
                continue
            self._last_alert_at[name] = self._clock()
            self.notify(rule.message(value))

    def _in_cooldown(self, name: str) -> bool:
        if self._alert_cooldown <= 0:
            return False
        last = self._last_alert_at.get(name)
        return last is not None and self._clock() - last < self._alert_cooldown


__all__ = ["ALERT_RULES", "AlertCallback", "AlertRule", "MetricSummary", "PerformanceMonitor"]
