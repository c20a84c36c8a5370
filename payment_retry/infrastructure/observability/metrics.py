"""Prometheus metrics for retry decisions, alert delivery and HTTP latency"""

from prometheus_client import Counter, Histogram
from payment_retry.domain.models import Decision

# Decision metrics
retry_decision_counter = Counter(
    "payment_retry_decision_total",
    "Retry decisions made for failed payment attempts",
    ["action", "bucket"],
)

retry_not_possible_counter = Counter(
    "payment_retry_not_possible_total",
    "Failures routed to manual review because retry is not possible",
    ["code"],
)

# Alert webhook metrics
alert_latency_histogram = Histogram(
    "alert_latency_seconds",
    "Alert webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

alert_failure_counter = Counter(
    "alert_failures_total",
    "Failed alert deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_retry_decision(decision: Decision) -> None:
    """Count resolved decisions by action and time bucket"""
    retry_decision_counter.labels(action=decision.action.value, bucket=decision.bucket.value).inc()


def record_not_possible(code: int) -> None:
    retry_not_possible_counter.labels(code=str(code)).inc()
