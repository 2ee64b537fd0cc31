"""Prometheus metrics collectors and helpers.

This module exposes counters and histograms for source calls and aggregate
requests, plus a helper to start the metrics HTTP server.
"""

from prometheus_client import Counter, Histogram, start_http_server

# Metric collectors
SOURCE_CALLS_TOTAL = Counter(
    "source_calls_total",
    "Source calls by terminal state",
    ["service", "source", "result"],
)
SOURCE_CALL_LATENCY = Histogram(
    "source_call_latency_seconds",
    "Per-source call latency in seconds",
    ["service", "source"],
)
AGGREGATE_CALLS_TOTAL = Counter(
    "aggregate_calls_total", "Aggregate calls served", ["service"]
)


def start_metrics_server(port: int) -> None:
    """Start the Prometheus metrics server on the provided ``port``.

    Parameters
    ----------
    port:
        TCP port to bind the HTTP server to.
    """

    start_http_server(int(port))
