"""Prometheus metrics for circulation transitions, fines, and notification delivery"""

from prometheus_client import Counter, Histogram

# Lifecycle metrics
transition_counter = Counter(
    "library_transition_total",
    "Lifecycle state transitions",
    ["entity", "status"],  # registration | borrow_ticket | return_ticket
)

out_of_stock_counter = Counter(
    "library_out_of_stock_total",
    "Reservations refused because no copy was available",
)

# Fine metrics
fine_counter = Counter(
    "library_fines_assessed_total",
    "Return tickets carrying a fine",
    ["condition"],
)

fine_amount_counter = Counter(
    "library_fine_amount_total",
    "Fine amount assessed in the smallest currency unit",
    ["condition"],
)

fine_payment_counter = Counter(
    "library_fine_payments_total",
    "Fines marked as paid",
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(entity: str, status: str) -> None:
    transition_counter.labels(entity=entity, status=status).inc()


def record_fine(condition: str, amount: int) -> None:
    """Record fine metrics; returns without a fine are not counted"""
    if amount <= 0:
        return
    fine_counter.labels(condition=condition).inc()
    fine_amount_counter.labels(condition=condition).inc(amount)
