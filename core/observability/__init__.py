"""
Observability Module for Lot Traceability

Provides:
- Structured logging with correlation IDs
- Metrics collection (resolution outcomes, queries, resolution times)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_query,
    record_resolution,
)

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_query",
    "record_resolution",
    # Logging
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
]
