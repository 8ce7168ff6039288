"""Lot Resolver Algorithm.

This module implements lot resolution:
1. Sanitize the raw identifier (empty → EMPTY_INPUT, no query issued)
2. Expand it into spelling variants
3. Walk the lookup plan, one batched "field in variants" query per step,
   stopping at the first step that returns documents
4. Bound the whole walk by a single wall-clock deadline

The lookup plan is an explicit ordered list of (collection, field) pairs:
primary collection first, then the legacy one, each by top-level lot
number, harvest lot number, then identity key.

Outcomes are returned as a LotResolution, never raised.
"""

import asyncio
import time
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from core.config import Settings, get_settings
from core.models.lot import LotRecord
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import MetricsCollector, get_metrics
from lot_resolver.models import (
    LookupStep,
    LotResolution,
    ResolutionStatus,
    StoredDocument,
    USER_MESSAGES,
)
from lot_resolver.normalize import candidate_variants, sanitize_lot_number
from lot_resolver.sources import DocumentQueryError, DocumentSource, IDENTITY_FIELD


logger = get_logger(__name__)

LOOKUP_FIELDS = ("lotNumber", "harvest.lotNumber", IDENTITY_FIELD)


def build_lookup_plan(
    primary_collection: str = "lots",
    legacy_collection: str = "avocado-tracking",
) -> Tuple[LookupStep, ...]:
    """Build the ordered (collection, field) lookup plan."""
    return tuple(
        LookupStep(collection=collection, field=field)
        for collection in (primary_collection, legacy_collection)
        for field in LOOKUP_FIELDS
    )


LOOKUP_PLAN = build_lookup_plan()


class LotResolver:
    """Resolves raw lot identifiers to stored lot records.

    The document source is injected, so the same resolver runs against
    Firestore, the local SQLite store or an in-memory test double.

    Example:
        resolver = LotResolver(SQLiteDocumentSource())
        resolution = await resolver.resolve("  lot-2024-001!! ")

        if resolution.is_found:
            print(resolution.record.display_lot_number)
        else:
            print(resolution.message)
    """

    def __init__(
        self,
        source: DocumentSource,
        settings: Optional[Settings] = None,
        metrics: Optional[MetricsCollector] = None,
        lookup_plan: Optional[Sequence[LookupStep]] = None,
    ):
        """Initialize the resolver.

        Args:
            source: Document source to query
            settings: Service settings (timeout, collection names)
            metrics: Metrics collector (defaults to the process-wide one)
            lookup_plan: Override of the ordered lookup steps
        """
        self.source = source
        self.settings = settings or get_settings()
        self.metrics = metrics or get_metrics()
        if lookup_plan is not None:
            self.lookup_plan = tuple(lookup_plan)
        else:
            self.lookup_plan = build_lookup_plan(
                self.settings.primary_collection,
                self.settings.legacy_collection,
            )

    @property
    def timeout_seconds(self) -> float:
        return self.settings.resolve_timeout_seconds

    async def resolve(self, raw_id: Optional[str]) -> LotResolution:
        """Resolve a raw lot identifier.

        Args:
            raw_id: Identifier as typed or scanned (may hold punctuation)

        Returns:
            LotResolution with status FOUND, EMPTY_INPUT, NOT_FOUND,
            TIMED_OUT or QUERY_FAILED
        """
        start_time = time.time()
        lot_number = sanitize_lot_number(raw_id)

        with with_correlation(lot_number=lot_number or None):
            if not lot_number:
                logger.warning("Missing lot number", extra_fields={"raw_input": raw_id})
                return self._finish(
                    ResolutionStatus.EMPTY_INPUT,
                    start_time,
                    raw_input=raw_id,
                )

            variants = candidate_variants(lot_number)
            logger.debug("Trying lot number variations", extra_fields={"variants": variants})

            progress = {"queries": 0}
            try:
                match = await asyncio.wait_for(
                    self._run_plan(variants, progress),
                    timeout=self.timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Lot resolution timed out",
                    extra_fields={
                        "timeout_seconds": self.timeout_seconds,
                        "queries_issued": progress["queries"],
                    },
                )
                return self._finish(
                    ResolutionStatus.TIMED_OUT,
                    start_time,
                    raw_input=raw_id,
                    lot_number=lot_number,
                    variants=variants,
                    queries_issued=progress["queries"],
                    error=f"No answer within {self.timeout_seconds:g}s",
                )
            except DocumentQueryError as e:
                logger.exception(
                    "Lot query failed",
                    extra_fields={"collection": e.collection, "field": e.field},
                )
                return self._finish(
                    ResolutionStatus.QUERY_FAILED,
                    start_time,
                    raw_input=raw_id,
                    lot_number=lot_number,
                    variants=variants,
                    collection=e.collection or None,
                    field=e.field or None,
                    queries_issued=progress["queries"],
                    error=str(e),
                )

            if match is None:
                logger.warning(
                    "No lot found with any of the variations",
                    extra_fields={"queries_issued": progress["queries"]},
                )
                return self._finish(
                    ResolutionStatus.NOT_FOUND,
                    start_time,
                    raw_input=raw_id,
                    lot_number=lot_number,
                    variants=variants,
                    queries_issued=progress["queries"],
                )

            step, document = match
            try:
                record = LotRecord.model_validate({IDENTITY_FIELD: document.id, **document.data})
            except ValidationError as e:
                logger.error(
                    "Stored lot document is not a valid lot record",
                    extra_fields={"collection": step.collection, "document_id": document.id},
                )
                return self._finish(
                    ResolutionStatus.QUERY_FAILED,
                    start_time,
                    raw_input=raw_id,
                    lot_number=lot_number,
                    variants=variants,
                    collection=step.collection,
                    field=step.field,
                    document_id=document.id,
                    queries_issued=progress["queries"],
                    error=f"Invalid lot document {step.collection}/{document.id}: {e}",
                )

            logger.info(
                "Lot found",
                extra_fields={
                    "collection": step.collection,
                    "field": step.field,
                    "document_id": document.id,
                },
            )
            return self._finish(
                ResolutionStatus.FOUND,
                start_time,
                raw_input=raw_id,
                lot_number=lot_number,
                variants=variants,
                record=record,
                collection=step.collection,
                field=step.field,
                document_id=document.id,
                queries_issued=progress["queries"],
            )

    async def _run_plan(
        self,
        variants: List[str],
        progress: Dict[str, int],
    ) -> Optional[Tuple[LookupStep, StoredDocument]]:
        """Query each lookup step in order; return the first hit.

        Any exception from the source is re-raised as DocumentQueryError so
        the caller can tell it apart from its own deadline.
        """
        for step in self.lookup_plan:
            with with_correlation(collection=step.collection, field=step.field):
                progress["queries"] += 1
                self.metrics.record_query(step.collection, step.field)
                try:
                    documents = await self.source.find_in(step.collection, step.field, variants)
                except DocumentQueryError:
                    raise
                except Exception as e:
                    raise DocumentQueryError(
                        f"{type(e).__name__}: {e}",
                        collection=step.collection,
                        field=step.field,
                    ) from e

                logger.debug("Query result", extra_fields={"size": len(documents)})
                if documents:
                    # Several documents can match; the first one wins
                    return step, documents[0]

        return None

    def _finish(
        self,
        status: ResolutionStatus,
        start_time: float,
        **fields,
    ) -> LotResolution:
        elapsed_ms = int((time.time() - start_time) * 1000)
        resolution = LotResolution(
            status=status,
            message=USER_MESSAGES[status],
            resolved_at=datetime.utcnow(),
            resolution_time_ms=elapsed_ms,
            **fields,
        )

        self.metrics.record_resolution(
            status.value,
            duration_ms=elapsed_ms,
            collection=resolution.collection if status == ResolutionStatus.FOUND else None,
            field=resolution.field if status == ResolutionStatus.FOUND else None,
        )
        return resolution

    def explain_resolution(self, resolution: LotResolution) -> str:
        """Generate a human-readable explanation of the resolution.

        Args:
            resolution: The resolution to explain

        Returns:
            Formatted explanation string
        """
        lines = ["=" * 60, "Lot Resolution Explanation", "=" * 60]

        lines.append(f"Raw input: '{resolution.raw_input}'")
        lines.append(f"Sanitized: '{resolution.lot_number}'")
        lines.append(f"Status: {resolution.status.value}")
        lines.append("")

        if resolution.is_found:
            lines.append(f"✓ FOUND: {resolution.record.display_lot_number}")
            lines.append(f"  Collection: {resolution.collection}")
            lines.append(f"  Field: {resolution.field}")
            lines.append(f"  Document: {resolution.document_id}")
        else:
            lines.append(f"⚠ {resolution.message}")
            if resolution.error:
                lines.append(f"  Error: {resolution.error}")

        if resolution.variants:
            lines.append("")
            lines.append(f"Variants ({len(resolution.variants)}):")
            for variant in resolution.variants:
                lines.append(f"  • '{variant}'")

        lines.append("")
        lines.append("Lookup plan:")
        for i, step in enumerate(self.lookup_plan):
            marker = "→" if i < resolution.queries_issued else " "
            lines.append(f"  {marker} {i+1}. {step.label}")

        lines.append("")
        lines.append(
            f"Resolved in {resolution.resolution_time_ms}ms "
            f"({resolution.queries_issued} queries)"
        )
        lines.append("=" * 60)

        return "\n".join(lines)
