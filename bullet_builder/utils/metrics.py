"""Prometheus metrics for document sync."""

from prometheus_client import Counter, Histogram

document_save_latency_ms = Histogram(
    "document_save_latency_ms",
    "Document save latency in milliseconds",
    ["outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

document_save_errors_total = Counter(
    "document_save_errors_total",
    "Total document save errors",
    ["reason"],
)

document_loads_total = Counter(
    "document_loads_total",
    "Total document loads",
    ["outcome"],
)


class PrometheusSyncMetrics:
    """Prometheus-based sync metrics implementation."""

    def record_save_latency(self, outcome: str, latency_ms: float) -> None:
        """Record save attempt latency."""
        document_save_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def inc_save_error(self, reason: str) -> None:
        """Increment save error counter."""
        document_save_errors_total.labels(reason=reason).inc()

    def inc_load(self, outcome: str) -> None:
        """Increment load counter."""
        document_loads_total.labels(outcome=outcome).inc()
