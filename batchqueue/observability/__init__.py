"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from batchqueue.observability.logging import (
    batch_context,
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)
from batchqueue.observability.metrics import (
    MetricsCollector,
    get_metrics,
    serve_metrics,
    setup_metrics,
)
from batchqueue.observability.tracing import create_span, get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "batch_context",
    "setup_metrics",
    "get_metrics",
    "serve_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "create_span",
]
