"""Prometheus metrics for itinerary persistence."""

from prometheus_client import Counter, Histogram

save_latency_ms = Histogram(
    "itinerary_save_latency_ms",
    "Itinerary save latency in milliseconds",
    ["target", "outcome"],
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 4000, 8000],
)

save_errors_total = Counter(
    "itinerary_save_errors_total",
    "Total failed remote itinerary writes",
    ["reason"],
)

save_skipped_total = Counter(
    "itinerary_save_skipped_total",
    "Total saves skipped because nothing changed",
)

fallback_writes_total = Counter(
    "itinerary_fallback_writes_total",
    "Total itinerary writes to the local fallback store",
)


class PrometheusSaveMetrics:
    """Prometheus-based save metrics implementation."""

    def record_latency(self, target: str, outcome: str, latency_ms: float) -> None:
        """Record save latency."""
        save_latency_ms.labels(target=target, outcome=outcome).observe(latency_ms)

    def inc_error(self, reason: str) -> None:
        """Increment remote write error counter."""
        save_errors_total.labels(reason=reason).inc()

    def inc_skipped(self) -> None:
        """Increment skipped save counter."""
        save_skipped_total.inc()

    def inc_fallback(self) -> None:
        """Increment fallback write counter."""
        fallback_writes_total.inc()
