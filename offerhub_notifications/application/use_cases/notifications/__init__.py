"""Public helpers for composing, routing and analysing notifications."""

from .analytics import (
    apply_notification_filter,
    build_notification_engagement,
    calculate_delivery_time,
    calculate_engagement_rate,
    calculate_response_time,
    generate_notification_stats,
)
from .batching import (
    batch_notifications,
    batch_notifications_by_user,
    create_optimal_batches,
    deduplicate_notifications,
    distribute_notifications,
    filter_by_preferences,
    group_by,
    optimize_notification_delivery,
    sort_by_priority,
)
from .content import (
    NotificationContent,
    generate_notification_content,
    optimize_notification_content,
    validate_notification_data,
)
from .events import compose_notifications
from .export import (
    CSV_HEADERS,
    compress_notification_data,
    decompress_notification_data,
    export_notifications_to_csv,
    export_notifications_to_json,
    serialize_notification,
)
from .routing import (
    calculate_notification_priority,
    in_quiet_hours,
    is_within_quiet_hours,
    parse_time,
    select_optimal_channels,
    should_send_notification,
    should_throttle_notification,
)

__all__ = [
    "CSV_HEADERS",
    "NotificationContent",
    "apply_notification_filter",
    "batch_notifications",
    "batch_notifications_by_user",
    "build_notification_engagement",
    "calculate_delivery_time",
    "calculate_engagement_rate",
    "calculate_notification_priority",
    "calculate_response_time",
    "compose_notifications",
    "compress_notification_data",
    "create_optimal_batches",
    "decompress_notification_data",
    "deduplicate_notifications",
    "distribute_notifications",
    "export_notifications_to_csv",
    "export_notifications_to_json",
    "filter_by_preferences",
    "generate_notification_content",
    "generate_notification_stats",
    "group_by",
    "in_quiet_hours",
    "is_within_quiet_hours",
    "optimize_notification_content",
    "optimize_notification_delivery",
    "parse_time",
    "select_optimal_channels",
    "serialize_notification",
    "should_send_notification",
    "should_throttle_notification",
    "sort_by_priority",
    "validate_notification_data",
]
