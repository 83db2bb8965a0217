"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Booking metrics
booking_attempts = Counter(
    'booking_attempts_total',
    'Total booking attempts',
    ['outcome']  # success, conflict, rejected, error
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Booking request latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

cancellations = Counter(
    'reservation_cancellations_total',
    'Reservation cancellations',
    ['actor']  # requester, host
)

# Commit guard metrics
commit_retries = Counter(
    'reservation_commit_retries_total',
    'Reservation commit retries',
    ['reason']  # version_conflict, transient_error
)

listing_lock_wait = Histogram(
    'listing_lock_wait_seconds',
    'Time spent waiting for a per-listing commit lock',
    buckets=[0.0001, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0]
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)

redis_connection_errors = Counter(
    'redis_connection_errors_total',
    'Redis connection errors'
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_booking_attempt(outcome: str):
    """Record booking attempt. Outcome: success, conflict, rejected, error"""
    booking_attempts.labels(outcome=outcome).inc()


def record_cancellation(by_host: bool):
    actor = "host" if by_host else "requester"
    cancellations.labels(actor=actor).inc()


def record_commit_retry(reason: str):
    """Record a retried commit. Reason: version_conflict, transient_error"""
    commit_retries.labels(reason=reason).inc()


def record_cache_operation(operation: str, hit: bool):
    """Record cache operation."""
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
