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
    ['status']  # success, not_found, own_item, conflict, race_conflict
)

booking_cancellations = Counter(
    'booking_cancellations_total',
    'Bookings cancelled, by the capability of the canceller',
    ['capability']  # owner, booker, admin
)

booking_latency = Histogram(
    'booking_latency_seconds',
    'Create-booking latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Item lifecycle metrics
item_events = Counter(
    'item_events_total',
    'Item lifecycle events',
    ['event']  # created, updated, approved, deleted, resubmitted
)

# Points economy
points_movements = Counter(
    'points_movements_total',
    'Points debited or credited',
    ['direction']  # debit, credit
)

points_debit_refused = Counter(
    'points_debit_refused_total',
    'Item creations refused for insufficient points'
)

# Media
media_uploads = Counter(
    'media_uploads_total',
    'Media uploads',
    ['media_type']  # Image, Video
)

# Cache metrics
cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Convenience functions for instrumentation
def record_booking_attempt(status: str):
    booking_attempts.labels(status=status).inc()


def record_cancellation(capability: str):
    booking_cancellations.labels(capability=capability).inc()


def record_item_event(event: str):
    item_events.labels(event=event).inc()


def record_points(direction: str, amount: int):
    points_movements.labels(direction=direction).inc(amount)


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
