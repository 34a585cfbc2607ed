"""Prometheus metrics for the analytics service."""

from shared.metrics import get_counter, get_histogram

SERVICE = "analytics"

REALTIME_EVENTS = get_counter(
    "realtime_events_total",
    "Activity events recorded in the counter store",
    SERVICE,
    labelnames=("event_type",),
)
DEGRADED_SECTIONS = get_counter(
    "degraded_sections_total",
    "Payload sections served from defaults because a store failed",
    SERVICE,
    labelnames=("payload", "section"),
)
PAYLOAD_LATENCY = get_histogram(
    "payload_build_seconds",
    "Time spent building an analytics payload",
    SERVICE,
    labelnames=("payload",),
)
UNKNOWN_STATUSES = get_counter(
    "unknown_status_total",
    "Rows whose status string is outside the known set",
    SERVICE,
    labelnames=("entity",),
)
