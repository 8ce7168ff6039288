"""
Metrics Collection for Lot Resolution

Collects and exposes in-process metrics for:
- Resolution outcomes (found, not found, timed out, failed, empty input)
- Queries issued against the document store
- Which lookup step (collection + field) produced each match
- Resolution times (average, p95)

Metrics live in memory only and reset on restart.
"""

import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional, Any


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class ResolutionMetrics:
    """Counts of resolution outcomes and lookups."""
    total: int = 0
    queries_issued: int = 0

    # By ResolutionStatus value
    by_status: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # "collection.field" -> matches
    matches_by_step: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    last_resolved_at: Optional[datetime] = None


@dataclass
class TimingMetrics:
    """Resolution time metrics."""
    # Raw timing samples (keep last N for percentile calculations)
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    # By outcome
    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: str = None) -> float:
        """Get average resolution time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        """Get 95th percentile resolution time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for lot resolution.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_query("lots", "lotNumber")
        metrics.record_resolution("found", duration_ms=42, collection="lots", field="lotNumber")
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.resolutions = ResolutionMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Resolution Metrics
    # =========================================================================

    def record_query(self, collection: str, field_path: str):
        """Record one query issued against the document store."""
        with self._lock:
            self.resolutions.queries_issued += 1

    def record_resolution(
        self,
        status: str,
        duration_ms: float = None,
        collection: str = None,
        field: str = None,
    ):
        """Record the outcome of one resolution attempt."""
        with self._lock:
            self.resolutions.total += 1
            self.resolutions.by_status[status] += 1
            self.resolutions.last_resolved_at = datetime.utcnow()

            if collection and field:
                self.resolutions.matches_by_step[f"{collection}.{field}"] += 1

            if duration_ms is not None:
                self.timings.add_sample(duration_ms, f"resolution.{status}")

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for an outcome stage (e.g. "resolution.found")."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            last = self.resolutions.last_resolved_at
            return {
                "resolutions": {
                    "total": self.resolutions.total,
                    "queries_issued": self.resolutions.queries_issued,
                    "by_status": dict(self.resolutions.by_status),
                    "matches_by_step": dict(self.resolutions.matches_by_step),
                    "last_resolved_at": last.isoformat() if last else None,
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }

    def reset(self):
        """Clear all collected metrics."""
        with self._lock:
            self.resolutions = ResolutionMetrics()
            self.timings = TimingMetrics()


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_query(collection: str, field_path: str):
    """Record one store query."""
    get_metrics().record_query(collection, field_path)


def record_resolution(status: str, duration_ms: float = None, collection: str = None, field: str = None):
    """Record a resolution outcome."""
    get_metrics().record_resolution(status, duration_ms, collection, field)
