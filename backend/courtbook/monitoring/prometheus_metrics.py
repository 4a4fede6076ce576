"""
Prometheus metrics for the court booking service.

Service timings come from the @measure_operation decorator; the booking
engine adds counters for lock outcomes, created bookings and rejected
slot requests.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so tests and multiple app instances don't collide with defaults
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "courtbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "courtbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "courtbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_lock_total = Counter(
    "courtbook_booking_lock_total",
    "Court/day lock operations by backend and outcome",
    ["backend", "outcome"],  # outcome: acquired | timeout | error
    registry=REGISTRY,
)

bookings_created_total = Counter(
    "courtbook_bookings_created_total",
    "Booking rows created, by API context",
    ["context"],
    registry=REGISTRY,
)

slot_conflicts_total = Counter(
    "courtbook_slot_conflicts_total",
    "Booking requests rejected because the interval was taken",
    ["reason"],  # overlap | buffer
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin facade over the module-level collectors."""

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

    @staticmethod
    def record_booking_lock(backend: str, outcome: str) -> None:
        booking_lock_total.labels(backend=backend, outcome=outcome).inc()

    @staticmethod
    def inc_bookings_created(context: str, count: int = 1) -> None:
        bookings_created_total.labels(context=context).inc(count)

    @staticmethod
    def inc_slot_conflict(reason: str) -> None:
        slot_conflicts_total.labels(reason=reason).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate metrics in Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
