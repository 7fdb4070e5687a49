"""
Prometheus metrics for the ActivityHub booking engine.

Service timings are fed by the ``@measure_operation`` decorator; the domain
counters cover the capacity lock, booking outcomes and payment settlement.
"""

from threading import Lock
from time import monotonic
from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so test runs and multiple app instances don't collide
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "activityhub_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "activityhub_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "activityhub_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

schedule_lock_total = Counter(
    "activityhub_schedule_lock_total",
    "Schedule capacity lock events",
    ["action", "outcome"],  # acquire|release x success|timeout|error|not_found
    registry=REGISTRY,
)

schedule_lock_wait_seconds = Histogram(
    "activityhub_schedule_lock_wait_seconds",
    "Time spent waiting for a schedule capacity lock",
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

booking_outcomes_total = Counter(
    "activityhub_booking_outcomes_total",
    "Booking attempts by outcome code",
    ["outcome"],  # created | <rejection code>
    registry=REGISTRY,
)

payment_settlements_total = Counter(
    "activityhub_payment_settlements_total",
    "Processed payment callbacks",
    ["processor", "result"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records and exposes the engine's Prometheus metrics."""

    _cache_lock: Lock = Lock()
    _cache_payload: Optional[bytes] = None
    _cache_ts: Optional[float] = None
    _cache_ttl_seconds: float = 1.0

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_schedule_lock(action: str, outcome: str, waited: Optional[float] = None) -> None:
        schedule_lock_total.labels(action=action, outcome=outcome).inc()
        if waited is not None:
            schedule_lock_wait_seconds.observe(max(waited, 0.0))
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_booking_outcome(outcome: str) -> None:
        booking_outcomes_total.labels(outcome=outcome).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def record_settlement(processor: str, result: str) -> None:
        payment_settlements_total.labels(processor=processor, result=result).inc()
        PrometheusMetrics._invalidate_cache()

    @staticmethod
    def get_metrics() -> bytes:
        """Metrics in Prometheus text format, cached for a short TTL."""
        now = monotonic()
        with PrometheusMetrics._cache_lock:
            payload = PrometheusMetrics._cache_payload
            ts = PrometheusMetrics._cache_ts
            if payload is None or ts is None or (now - ts) > PrometheusMetrics._cache_ttl_seconds:
                payload = cast(bytes, generate_latest(REGISTRY))
                PrometheusMetrics._cache_payload = payload
                PrometheusMetrics._cache_ts = now
        return payload

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)

    @staticmethod
    def _invalidate_cache() -> None:
        with PrometheusMetrics._cache_lock:
            PrometheusMetrics._cache_ts = None
            PrometheusMetrics._cache_payload = None


# Singleton instance
prometheus_metrics = PrometheusMetrics()
