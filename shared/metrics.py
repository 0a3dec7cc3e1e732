"""
Shared metrics configuration for the registry auth adaptor.
"""

from typing import Dict, Any, Optional
import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest


class AuthMetrics:
    """Prometheus metrics for authentication attempts, cache and upstream calls.

    Each instance owns its own registry unless one is supplied, so several
    authenticators can live in one process without colliding.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up adaptor metrics."""
        self._metrics["auth_attempts_total"] = Counter(
            "registry_auth_attempts_total",
            "Total authentication attempts",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["cache_lookups_total"] = Counter(
            "registry_auth_cache_lookups_total",
            "Total credential cache lookups",
            ["result"],
            registry=self.registry
        )

        self._metrics["upstream_requests_total"] = Counter(
            "registry_auth_upstream_requests_total",
            "Total upstream team listing requests",
            ["role", "status"],
            registry=self.registry
        )

        self._metrics["upstream_latency_seconds"] = Histogram(
            "registry_auth_upstream_latency_seconds",
            "Upstream privilege resolution duration in seconds",
            registry=self.registry
        )

    def record_attempt(self, outcome: str):
        """Record an authentication outcome (accepted, denied, error)."""
        self._metrics["auth_attempts_total"].labels(outcome=outcome).inc()

    def record_cache_lookup(self, result: str):
        """Record a cache lookup result (hit, miss, mismatch, error)."""
        self._metrics["cache_lookups_total"].labels(result=result).inc()

    def record_upstream_request(self, role: str, status: str):
        """Record a single upstream page request."""
        self._metrics["upstream_requests_total"].labels(role=role, status=status).inc()

    @contextmanager
    def time_upstream(self):
        """Context manager to time a privilege resolution."""
        start_time = time.time()
        try:
            yield
        finally:
            self._metrics["upstream_latency_seconds"].observe(time.time() - start_time)

    def sample(self, name: str, **labels) -> float:
        """Current value of a counter sample, 0.0 when never incremented."""
        value = self.registry.get_sample_value(name, labels)
        return value or 0.0

    def render(self) -> bytes:
        """Render the registry in Prometheus text exposition format."""
        return generate_latest(self.registry)
