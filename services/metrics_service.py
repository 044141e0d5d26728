"""
Prometheus metrics for the exporter.

Everything is registered on an injected ``CollectorRegistry`` created at
startup, never on the process default registry.
"""
import logging
import threading

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from services.aggregation_service import AggregationResult

logger = logging.getLogger(__name__)

LABEL_NAMES = ["cluster_name", "group_name", "sku"]


class MetricPublisher:
    def __init__(self, registry: CollectorRegistry):
        self.registry = registry
        self._lock = threading.Lock()

        self.item_total = Gauge(
            "atlas_billing_item_cents_total",
            "Pending invoice total per billing item, in cents",
            LABEL_NAMES,
            registry=registry,
        )
        self.item_rate = Gauge(
            "atlas_billing_item_cents_rate",
            "Recent hourly rate per billing item, in dollars per hour",
            LABEL_NAMES,
            registry=registry,
        )

    def publish(self, result: AggregationResult):
        with self._lock:
            # Meters that dropped out of the invoice or the freshness window
            # must not keep their last value.
            self.item_total.clear()
            self.item_rate.clear()

            for summary in result.totals.values():
                self.item_total.labels(**summary.labels).set(float(summary.total_price_cents))

            for key, summary in result.rates.items():
                rate = summary.hourly_rate
                if rate is None:
                    logger.debug(f"Zero quantity for {key}, not publishing a rate")
                    continue
                self.item_rate.labels(**summary.labels).set(rate)

        logger.debug(f"Published {len(result.totals)} totals and {len(result.rates)} rates")

    def render(self) -> bytes:
        with self._lock:
            return generate_latest(self.registry)


class RequestMetrics:
    def __init__(self, registry: CollectorRegistry):
        self.requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests served",
            ["method", "path", "status"],
            registry=registry,
        )
        self.requests_duration_seconds = Histogram(
            "http_requests_duration_seconds",
            "Time spent serving HTTP requests (seconds)",
            ["method", "path", "status"],
            registry=registry,
        )

    def observe(self, method: str, path: str, status: int, duration: float):
        labels = {"method": method, "path": path, "status": str(status)}
        self.requests_total.labels(**labels).inc()
        self.requests_duration_seconds.labels(**labels).observe(duration)
