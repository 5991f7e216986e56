"""Prometheus metrics for payment reconciliation, provider health and nearby queries"""

from prometheus_client import Counter, Histogram

# Payment metrics
payment_created_counter = Counter(
    "riskwatch_payment_created_total",
    "Payments created at the provider",
    ["method"],  # creditcard | banktransfer | directdebit
)

webhook_outcome_counter = Counter(
    "riskwatch_payment_webhook_total",
    "Payment webhook deliveries by reconciliation outcome",
    ["outcome"],
)

webhook_failure_counter = Counter(
    "riskwatch_payment_webhook_failures_total",
    "Webhook deliveries acknowledged despite a processing error",
)

subscription_activation_counter = Counter(
    "riskwatch_subscription_activations_total",
    "Subscriptions created or extended by a paid payment",
)

# Provider API metrics
provider_latency_histogram = Histogram(
    "payment_provider_latency_seconds",
    "Payment provider API response time",
    ["operation"],  # create | get
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

provider_failure_counter = Counter(
    "payment_provider_failures_total",
    "Failed payment provider API calls",
    ["operation"],
)

# Nearby query metrics
nearby_result_histogram = Histogram(
    "riskwatch_nearby_results",
    "Risks returned per nearby query",
    buckets=[0, 1, 5, 10, 25, 50, 100, 200],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_webhook_outcome(outcome: str) -> None:
    """Count a webhook delivery; errors also increment the failure counter"""
    webhook_outcome_counter.labels(outcome=outcome).inc()
    if outcome == "error":
        webhook_failure_counter.inc()
