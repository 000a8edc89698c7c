"""
Shared metrics configuration for the Zant queue gateway.
"""

from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry so several service instances (tests,
    embedded gateways) can coexist in one process.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._setup_gateway_metrics()

    def _setup_gateway_metrics(self):
        """Set up queue gateway metrics."""
        self._metrics["gateway_decisions_total"] = Counter(
            "gateway_decisions_total",
            "Gateway decisions by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["gateway_bans_total"] = Counter(
            "gateway_bans_total",
            "Fingerprint bans issued",
            ["reason"],
            registry=self.registry
        )

        self._metrics["gateway_suspicious_requests_total"] = Counter(
            "gateway_suspicious_requests_total",
            "Requests carrying suspicious header patterns",
            ["tag"],
            registry=self.registry
        )

        self._metrics["gateway_token_rejections_total"] = Counter(
            "gateway_token_rejections_total",
            "Presented queue tokens that failed verification",
            registry=self.registry
        )

        self._metrics["gateway_secret_rotations_total"] = Counter(
            "gateway_secret_rotations_total",
            "Signing secret rotations",
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_gateway_decision(self, outcome: str):
        self._metrics["gateway_decisions_total"].labels(outcome=outcome).inc()

    def record_ban(self, reason: str):
        self._metrics["gateway_bans_total"].labels(reason=reason).inc()

    def record_suspicious_tags(self, tags):
        for tag in tags:
            self._metrics["gateway_suspicious_requests_total"].labels(tag=tag).inc()

    def record_token_rejection(self):
        self._metrics["gateway_token_rejections_total"].inc()

    def record_secret_rotation(self):
        self._metrics["gateway_secret_rotations_total"].inc()

    def sample_value(self, name: str, labels: Optional[Dict[str, str]] = None) -> Optional[float]:
        """Read a single sample from this collector's registry."""
        return self.registry.get_sample_value(name, labels or {})


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
