"""
Shared metrics configuration for the Storefront Catalog core.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import CollectorRegistry, Counter, Gauge, Info


class MetricsCollector:
    """Centralized metrics collector for catalog components."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "catalog":
            self._setup_catalog_metrics()

    def _setup_catalog_metrics(self):
        """Set up metadata cache and code validation metrics."""
        self._metrics["metadata_cache_requests_total"] = Counter(
            "metadata_cache_requests_total",
            "Metadata cache lookups by result",
            ["result"],
            registry=self.registry
        )

        self._metrics["metadata_cache_entries"] = Gauge(
            "metadata_cache_entries",
            "Entries currently held by the metadata cache",
            registry=self.registry
        )

        self._metrics["metadata_fetch_total"] = Counter(
            "metadata_fetch_total",
            "Calls to the external metadata provider by result",
            ["result"],
            registry=self.registry
        )

        self._metrics["code_validations_total"] = Counter(
            "code_validations_total",
            "Promo and commission code validations by outcome",
            ["kind", "outcome"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        metric = self.get_metric(metric_name)
        if metric is None:
            return
        with self._lock:
            (metric.labels(**labels) if labels else metric).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        metric = self.get_metric(metric_name)
        if metric is None:
            return
        with self._lock:
            (metric.labels(**labels) if labels else metric).set(value)
