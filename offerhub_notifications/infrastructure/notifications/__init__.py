"""Notification delivery helpers for the infrastructure layer."""

from .cache import NotificationCache
from .circuit_breaker import CircuitBreaker, CircuitState
from .container import NotificationServices, build_notification_services, notification_cache_key
from .errors import (
    CircuitBreakerOpenError,
    NotificationDeliveryError,
    PartialDeliveryError,
    SendTimeoutError,
)
from .manager import NotificationConnectionManager
from .monitor import ALERT_RULES, AlertRule, MetricSummary, PerformanceMonitor
from .publisher import InAppPublisher, serialize_request
from .queue import EnqueueResult, NotificationQueue, QueueConfig
from .rate_limiter import FixedWindowRateLimiter
from .senders import DeliverySenders, LoggingSenders, NotificationSenders

__all__ = [
    "ALERT_RULES",
    "AlertRule",
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "DeliverySenders",
    "EnqueueResult",
    "FixedWindowRateLimiter",
    "InAppPublisher",
    "LoggingSenders",
    "MetricSummary",
    "NotificationCache",
    "NotificationConnectionManager",
    "NotificationDeliveryError",
    "NotificationQueue",
    "NotificationSenders",
    "NotificationServices",
    "PartialDeliveryError",
    "PerformanceMonitor",
    "QueueConfig",
    "SendTimeoutError",
    "build_notification_services",
    "notification_cache_key",
    "serialize_request",
]
