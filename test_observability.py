"""
Observability Validation Test

This test validates the observability stack:
1. Metrics collection works (resolution outcomes, queries, timings)
2. Structured logging with correlation IDs works
3. A resolution logs its lot number and lookup step

Pass criteria: from one lot lookup, the logs show which request, lot and
lookup step produced each line.
"""

import asyncio
import json
import logging

import pytest


def test_observability_imports():
    """Verify all observability modules import correctly."""
    from core.observability import (
        MetricsCollector, get_metrics,
        record_query, record_resolution,
        get_logger, configure_logging, CorrelationContext, with_correlation,
    )
    assert MetricsCollector is not None
    assert get_metrics is not None
    assert CorrelationContext is not None
    assert with_correlation is not None


class TestMetricsCollector:
    """Test the metrics collection system."""

    def test_singleton_instance(self):
        """MetricsCollector returns same instance."""
        from core.observability.metrics import MetricsCollector
        m1 = MetricsCollector.instance()
        m2 = MetricsCollector.instance()
        assert m1 is m2

    def test_module_functions_use_global_collector(self):
        """record_query / record_resolution feed the singleton."""
        from core.observability.metrics import get_metrics, record_query, record_resolution
        mc = get_metrics()

        baseline = mc.get_summary()["resolutions"]
        record_query("lots", "lotNumber")
        record_resolution("not_found", duration_ms=12)

        summary = mc.get_summary()["resolutions"]
        assert summary["queries_issued"] == baseline["queries_issued"] + 1
        assert summary["total"] == baseline["total"] + 1

    def test_resolution_outcomes_tracking(self):
        """Track outcome counts and the step that matched."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector()

        mc.record_query("lots", "lotNumber")
        mc.record_query("lots", "harvest.lotNumber")
        mc.record_resolution("found", duration_ms=40, collection="lots", field="harvest.lotNumber")
        mc.record_resolution("timed_out", duration_ms=10000)
        mc.record_resolution("timed_out", duration_ms=10001)

        summary = mc.get_summary()
        assert summary["resolutions"]["total"] == 3
        assert summary["resolutions"]["queries_issued"] == 2
        assert summary["resolutions"]["by_status"] == {"found": 1, "timed_out": 2}
        assert summary["resolutions"]["matches_by_step"] == {"lots.harvest.lotNumber": 1}
        assert summary["resolutions"]["last_resolved_at"] is not None
        assert set(summary["timings"]["by_stage"]) == {"resolution.found", "resolution.timed_out"}

        # Summary must be JSON-serializable for the /metrics endpoint
        json.dumps(summary)

    def test_timing_percentile_calculation(self):
        """Calculate p95 timing correctly."""
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector()

        for i in range(1, 101):
            mc.record_resolution("found", duration_ms=i)

        stats = mc.get_timing_stats("resolution.found")

        # Average should be ~50.5
        assert 49 <= stats["average_ms"] <= 52
        # P95 should be ~95
        assert 93 <= stats["p95_ms"] <= 97
        assert stats["sample_count"] == 100

    def test_empty_stats(self):
        from core.observability.metrics import MetricsCollector
        stats = MetricsCollector().get_timing_stats("resolution.found")
        assert stats == {"average_ms": 0.0, "p95_ms": 0.0, "sample_count": 0}

    def test_reset(self):
        from core.observability.metrics import MetricsCollector
        mc = MetricsCollector()
        mc.record_query("lots", "id")
        mc.record_resolution("query_failed", duration_ms=5)

        mc.reset()

        summary = mc.get_summary()
        assert summary["resolutions"]["total"] == 0
        assert summary["resolutions"]["by_status"] == {}
        assert summary["timings"]["overall"]["average_ms"] == 0.0


class TestCorrelatedLogging:
    """Test structured logging with correlation IDs."""

    def test_correlation_context_creation(self):
        """Create correlation context with all fields."""
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(
            request_id="req-123",
            lot_number="LOT-2024-001",
            collection="lots",
            field="lotNumber",
            route="/lots/LOT-2024-001",
        )

        assert ctx.lot_number == "LOT-2024-001"
        assert ctx.merge(field="id", collection=None).to_dict() == {
            "request_id": "req-123",
            "lot_number": "LOT-2024-001",
            "collection": "lots",
            "field": "id",
            "route": "/lots/LOT-2024-001",
        }

    def test_context_var_isolation(self):
        """with_correlation nests and restores."""
        from core.observability.logging import get_correlation_context, with_correlation

        assert get_correlation_context().lot_number is None

        with with_correlation(lot_number="LOT-TEST"):
            with with_correlation(collection="lots"):
                inner = get_correlation_context()
                assert inner.lot_number == "LOT-TEST"
                assert inner.collection == "lots"
            assert get_correlation_context().collection is None

        assert get_correlation_context().lot_number is None

    def test_context_is_isolated_per_task(self):
        """Concurrent tasks keep their own lot number."""
        from core.observability.logging import get_correlation_context, with_correlation

        async def lookup(lot_number):
            with with_correlation(lot_number=lot_number):
                await asyncio.sleep(0.01)
                return get_correlation_context().lot_number

        async def main():
            return await asyncio.gather(lookup("LOT-A"), lookup("LOT-B"))

        assert asyncio.run(main()) == ["LOT-A", "LOT-B"]

    def test_structured_formatter_json_output(self):
        """StructuredFormatter outputs valid JSON."""
        from core.observability.logging import StructuredFormatter, with_correlation

        formatter = StructuredFormatter()

        with with_correlation(lot_number="LOT-2024-001", collection="lots"):
            record = logging.LogRecord(
                name="test",
                level=logging.INFO,
                pathname="test.py",
                lineno=10,
                msg="Test message",
                args=(),
                exc_info=None,
            )
            record.extra_fields = {"queries_issued": 3}

            data = json.loads(formatter.format(record))

        assert data["message"] == "Test message"
        assert data["lot_number"] == "LOT-2024-001"
        assert data["collection"] == "lots"
        assert data["queries_issued"] == 3
        assert data["level"] == "INFO"

    def test_human_readable_formatter(self):
        from core.observability.logging import HumanReadableFormatter, with_correlation

        formatter = HumanReadableFormatter()
        record = logging.LogRecord("lot_resolver", logging.WARNING, "x.py", 1, "Lot query failed", (), None)
        record.extra_fields = {"size": 0}

        with with_correlation(request_id="abcdef0123456789", lot_number="LOT-1",
                              collection="lots", field="id"):
            output = formatter.format(record)

        assert "[abcdef01/LOT-1/lots.id]" in output
        assert output.endswith("Lot query failed size=0")

    def test_human_readable_without_context(self):
        from core.observability.logging import HumanReadableFormatter

        record = logging.LogRecord("api", logging.INFO, "x.py", 1, "Started", (), None)
        assert "[-]: Started" in HumanReadableFormatter().format(record)

    def test_logger_passes_extra_fields(self, caplog):
        from core.observability.logging import get_logger

        logger = get_logger("lot_resolver.test")
        with caplog.at_level(logging.INFO, logger="lot_resolver.test"):
            logger.info("Lot found", extra_fields={"document_id": "doc-1"})

        assert caplog.records[-1].getMessage() == "Lot found"
        assert caplog.records[-1].extra_fields == {"document_id": "doc-1"}

    def test_exception_attaches_traceback(self, caplog):
        from core.observability.logging import get_logger

        logger = get_logger("lot_resolver.test")
        with caplog.at_level(logging.ERROR, logger="lot_resolver.test"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Lot query failed")

        assert caplog.records[-1].exc_info[0] is RuntimeError


class TestResolutionLogging:
    """A lookup logs with lot number and step correlation."""

    def test_resolution_logs_are_correlated(self):
        from core.config import Settings
        from core.observability.logging import get_correlation_context, get_logger
        from core.observability.metrics import MetricsCollector
        from lot_resolver import InMemoryDocumentSource, LotResolver

        seen = []

        class Capture(logging.Handler):
            def emit(self, record):
                ctx = get_correlation_context()
                seen.append((record.getMessage(), ctx.lot_number, ctx.collection, ctx.field))

        handler = Capture(level=logging.DEBUG)
        resolver_logger = logging.getLogger("lot_resolver.resolver")
        previous_level = resolver_logger.level
        resolver_logger.addHandler(handler)
        resolver_logger.setLevel(logging.DEBUG)
        try:
            source = InMemoryDocumentSource({"lots": {"d": {"harvest": {"lotNumber": "LOT-9"}}}})
            resolver = LotResolver(source, settings=Settings(), metrics=MetricsCollector())
            asyncio.run(resolver.resolve("lot 9"))
        finally:
            resolver_logger.removeHandler(handler)
            resolver_logger.setLevel(previous_level)

        assert ("Lot found", "lot-9", None, None) in seen
        step_logs = [entry for entry in seen if entry[0] == "Query result"]
        assert [(c, f) for _, _, c, f in step_logs] == [
            ("lots", "lotNumber"),
            ("lots", "harvest.lotNumber"),
        ]
        assert all(lot == "lot-9" for _, lot, _, _ in seen)


def test_observability_summary():
    """Print a summary of the observability stack (for manual runs)."""
    from core.observability.metrics import MetricsCollector

    mc = MetricsCollector()
    mc.record_resolution("found", duration_ms=30, collection="lots", field="lotNumber")
    summary = mc.get_summary()

    print("\n" + "=" * 60)
    print("OBSERVABILITY SUMMARY")
    print("=" * 60)
    print(json.dumps(summary, indent=2))
    assert summary["resolutions"]["total"] == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
