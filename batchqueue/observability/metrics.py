"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)

from batchqueue.constants import (
    METRIC_LOCK_ATTEMPTS,
    METRIC_MESSAGES_PLUCKED,
    METRIC_MESSAGES_PUSHED,
    METRIC_MESSAGES_REQUEUED,
    METRIC_OPERATION_LATENCY,
    METRIC_PENDING_ACKNOWLEDGED,
    METRIC_PENDING_CREATED,
    METRIC_PENDING_EXPIRED,
    METRIC_QUEUE_DEPTH,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the batch queue.

    Collects metrics for:
    - Queue depth per batch
    - Messages pushed, plucked and requeued
    - Pending job lifecycle (created, acknowledged, expired)
    - Advisory lock attempts
    - Operation latency
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of messages waiting in a batch",
            ["batch"],
            registry=self._registry,
        )

        self.messages_pushed = Counter(
            METRIC_MESSAGES_PUSHED,
            "Total number of messages appended to batches",
            ["batch"],
            registry=self._registry,
        )

        self.messages_plucked = Counter(
            METRIC_MESSAGES_PLUCKED,
            "Total number of messages removed from batches",
            ["batch", "mode"],
            registry=self._registry,
        )

        self.messages_requeued = Counter(
            METRIC_MESSAGES_REQUEUED,
            "Total number of messages returned to batches from expired pending jobs",
            ["batch"],
            registry=self._registry,
        )

        self.pending_created = Counter(
            METRIC_PENDING_CREATED,
            "Total number of pending jobs created by reliable plucks",
            ["batch"],
            registry=self._registry,
        )

        self.pending_acknowledged = Counter(
            METRIC_PENDING_ACKNOWLEDGED,
            "Total number of pending jobs acknowledged",
            ["batch"],
            registry=self._registry,
        )

        self.pending_expired = Counter(
            METRIC_PENDING_EXPIRED,
            "Total number of expired pending jobs requeued",
            ["batch"],
            registry=self._registry,
        )

        self.lock_attempts = Counter(
            METRIC_LOCK_ATTEMPTS,
            "Total number of advisory lock attempts",
            ["batch", "acquired"],
            registry=self._registry,
        )

        self.operation_latency = Histogram(
            METRIC_OPERATION_LATENCY,
            "Batch operation latency in seconds",
            ["operation"],
            buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
            registry=self._registry,
        )

    def record_pushed(self, batch: str, count: int) -> None:
        """Record appended messages."""
        if count:
            self.messages_pushed.labels(batch=batch).inc(count)

    def record_plucked(self, batch: str, mode: str, count: int) -> None:
        """Record messages leaving the main queue."""
        if count:
            self.messages_plucked.labels(batch=batch, mode=mode).inc(count)

    def record_pending_created(self, batch: str) -> None:
        self.pending_created.labels(batch=batch).inc()

    def record_pending_acknowledged(self, batch: str) -> None:
        self.pending_acknowledged.labels(batch=batch).inc()

    def record_requeued(self, batch: str, expired_jobs: int, messages: int) -> None:
        """Record a requeue pass over expired pending jobs."""
        if expired_jobs:
            self.pending_expired.labels(batch=batch).inc(expired_jobs)
        if messages:
            self.messages_requeued.labels(batch=batch).inc(messages)

    def record_lock_attempt(self, batch: str, acquired: bool) -> None:
        self.lock_attempts.labels(batch=batch, acquired=str(acquired).lower()).inc()

    def update_queue_depth(self, batch: str, depth: int) -> None:
        """Update queue depth for a batch."""
        self.queue_depth.labels(batch=batch).set(depth)

    def observe_latency(self, operation: str, duration_seconds: float) -> None:
        self.operation_latency.labels(operation=operation).observe(duration_seconds)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)


def setup_metrics(registry: CollectorRegistry | None = None) -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Args:
        registry: Optional custom registry, only used on first call.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector(registry)
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the metrics collector instance, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics


def serve_metrics(port: int) -> None:
    """
    Expose the default registry over HTTP for Prometheus to scrape.

    Args:
        port: Port to listen on.
    """
    start_http_server(port)
