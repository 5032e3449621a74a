"""Prometheus metrics for oracle calls and engine fallbacks."""

from typing import Protocol

from prometheus_client import Counter, Histogram

# Oracle call metrics
oracle_latency_ms = Histogram(
    "oracle_latency_ms",
    "Oracle call latency in milliseconds",
    ["oracle", "outcome"],
    buckets=[50, 100, 250, 500, 1000, 2000, 4000, 8000, 16000, 32000],
)

oracle_calls_total = Counter(
    "oracle_calls_total",
    "Total oracle calls by outcome",
    ["oracle", "outcome"],
)

# Deterministic fallbacks taken by the engine
engine_fallbacks_total = Counter(
    "engine_fallbacks_total",
    "Total deterministic fallbacks taken",
    ["operation", "reason"],
)


class EngineMetrics(Protocol):
    """Metrics sink used by engine components."""

    def record_oracle_call(self, oracle: str, outcome: str, latency_ms: float) -> None:
        """Record one oracle call."""
        ...

    def inc_fallback(self, operation: str, reason: str) -> None:
        """Record one deterministic fallback."""
        ...


class PrometheusEngineMetrics:
    """Prometheus-based engine metrics implementation."""

    def record_oracle_call(self, oracle: str, outcome: str, latency_ms: float) -> None:
        """Record oracle call latency and outcome."""
        oracle_latency_ms.labels(oracle=oracle, outcome=outcome).observe(latency_ms)
        oracle_calls_total.labels(oracle=oracle, outcome=outcome).inc()

    def inc_fallback(self, operation: str, reason: str) -> None:
        """Increment fallback counter."""
        engine_fallbacks_total.labels(operation=operation, reason=reason).inc()


class NoopEngineMetrics:
    """Metrics sink that discards everything (tests)."""

    def record_oracle_call(self, oracle: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_fallback(self, operation: str, reason: str) -> None:
        pass
