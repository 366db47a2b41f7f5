"""
Prometheus metrics for BLverse.

Service timings come from the @measure_operation decorator; realtime
fan-out reports one sample per client write so dropped connections are
visible.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry so repeated app construction in tests does not re-register
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "blverse_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "blverse_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "blverse_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

realtime_deliveries_total = Counter(
    "blverse_realtime_deliveries_total",
    "Realtime event writes to connected clients",
    ["channel", "event", "outcome"],  # channel: room|stream, outcome: delivered|failed
    registry=REGISTRY,
)

realtime_connections = Gauge(
    "blverse_realtime_connections",
    "Currently open realtime connections",
    ["channel"],
    registry=REGISTRY,
)

notifications_total = Counter(
    "blverse_notifications_total",
    "Notification creation attempts",
    ["type", "outcome"],  # outcome: created|skipped|failed
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade so callers do not touch metric objects directly."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_delivery(channel: str, event: str, outcome: str) -> None:
        realtime_deliveries_total.labels(channel=channel, event=event, outcome=outcome).inc()

    @staticmethod
    def set_connections(channel: str, count: int) -> None:
        realtime_connections.labels(channel=channel).set(count)

    @staticmethod
    def record_notification(type: str, outcome: str) -> None:
        notifications_total.labels(type=type, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
