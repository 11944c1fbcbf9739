"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Purchase metrics
purchase_attempts = Counter(
    'ticket_purchase_attempts_total',
    'Total ticket purchase attempts',
    ['status']  # success, invalid, not_found, capacity, error
)

tickets_sold = Counter(
    'tickets_sold_total',
    'Admission units sold across all events'
)

purchase_latency = Histogram(
    'ticket_purchase_latency_seconds',
    'Ticket purchase latency',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Database metrics
db_operations = Counter(
    'db_operations_total',
    'Total database operations',
    ['operation']  # read, write, rollback
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
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_purchase_attempt(status: str, quantity: int = 0):
    """Record purchase attempt. Status: success, invalid, not_found, capacity, error"""
    purchase_attempts.labels(status=status).inc()
    if status == "success":
        tickets_sold.inc(quantity)


def record_db_operation(operation: str):
    db_operations.labels(operation=operation).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
