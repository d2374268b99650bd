"""Prometheus metrics and a tiny HTTP server to expose them.

Call `start_metrics_server(port)` once in a process to expose /metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server


# Worker metrics
WORKER_MESSAGE_TOTAL = Counter(
    "registration_worker_message_total",
    "Total registration messages handled by the worker",
    ["outcome"],  # acked | duplicate | rejected | ignored
)
WORKER_PROCESS_LATENCY_SECONDS = Histogram(
    "registration_worker_process_latency_seconds",
    "Time to process a single registration message",
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 2, 5),
)

# Publisher metrics
PUBLISH_ATTEMPT_TOTAL = Counter(
    "registration_publish_attempt_total", "Total publish attempts", ["result"]
)

# Notifier metrics
WELCOME_EMAIL_TOTAL = Counter(
    "registration_welcome_email_total",
    "Welcome email attempts",
    ["result"],  # sent | failed | disabled
)


def start_metrics_server(port: int = 9000) -> None:
    start_http_server(port)
