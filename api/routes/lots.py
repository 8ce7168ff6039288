"""Lot traceability endpoints.

Read-only lookups backing the lot detail page:
- GET /lots/{lot_number}           resolved record + timeline
- GET /lots/{lot_number}/timeline  timeline only
- GET /lots/{lot_number}/variants  spellings the resolver will try
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from core.config import get_settings
from core.observability.logging import get_logger
from lot_resolver import (
    DocumentSource,
    LotResolution,
    LotResolver,
    ResolutionStatus,
    USER_MESSAGES,
    candidate_variants,
    create_firestore_source,
    sanitize_lot_number,
)
from lot_resolver.db import SQLiteDocumentSource
from lot_timeline import LotTimeline, assemble_timeline


router = APIRouter()
logger = get_logger(__name__)


# HTTP status for each unsuccessful resolution
ERROR_STATUS_CODES = {
    ResolutionStatus.EMPTY_INPUT: 400,
    ResolutionStatus.NOT_FOUND: 404,
    ResolutionStatus.TIMED_OUT: 504,
    ResolutionStatus.QUERY_FAILED: 502,
}


class LotDetailResponse(BaseModel):
    """A resolved lot with its timeline."""
    lot_number: str = Field(..., description="Sanitized lot number that was looked up")
    collection: str
    field: str
    document_id: str
    record: Dict[str, Any] = Field(..., description="Stored lot document (camelCase)")
    timeline: LotTimeline


class LotVariantsResponse(BaseModel):
    """What the resolver will try for a raw lot number."""
    raw_input: str
    lot_number: str
    variants: List[str]
    lookup_plan: List[str]


# =============================================================================
# Dependencies
# =============================================================================

_source: Optional[DocumentSource] = None


def get_document_source() -> DocumentSource:
    """Document source chosen by LOT_STORE_BACKEND, created once."""
    global _source
    if _source is None:
        settings = get_settings()
        if settings.store_backend == "firestore":
            _source = create_firestore_source(settings.firestore_project_id)
        else:
            _source = SQLiteDocumentSource(settings.store_db_path)
    return _source


def get_resolver(source: DocumentSource = Depends(get_document_source)) -> LotResolver:
    return LotResolver(source, settings=get_settings())


async def _resolve_or_raise(lot_number: str, resolver: LotResolver) -> LotResolution:
    resolution = await resolver.resolve(lot_number)
    if resolution.status != ResolutionStatus.FOUND:
        raise HTTPException(
            status_code=ERROR_STATUS_CODES[resolution.status],
            detail={
                "status": resolution.status.value,
                "message": resolution.message,
                "lot_number": resolution.lot_number,
            },
        )
    return resolution


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{lot_number}", response_model=LotDetailResponse)
async def get_lot(
    lot_number: str,
    resolver: LotResolver = Depends(get_resolver),
) -> LotDetailResponse:
    """Resolve a lot number and return the record with its timeline."""
    resolution = await _resolve_or_raise(lot_number, resolver)
    return LotDetailResponse(
        lot_number=resolution.lot_number,
        collection=resolution.collection,
        field=resolution.field,
        document_id=resolution.document_id,
        record=resolution.record.to_document(),
        timeline=assemble_timeline(resolution.record),
    )


@router.get("/{lot_number}/timeline", response_model=LotTimeline)
async def get_lot_timeline(
    lot_number: str,
    resolver: LotResolver = Depends(get_resolver),
) -> LotTimeline:
    """Resolve a lot number and return its timeline only."""
    resolution = await _resolve_or_raise(lot_number, resolver)
    return assemble_timeline(resolution.record)


@router.get("/{lot_number}/variants", response_model=LotVariantsResponse)
async def get_lot_variants(
    lot_number: str,
    resolver: LotResolver = Depends(get_resolver),
) -> LotVariantsResponse:
    """Show the sanitized lot number, its variants and the lookup plan."""
    base = sanitize_lot_number(lot_number)
    if not base:
        raise HTTPException(
            status_code=ERROR_STATUS_CODES[ResolutionStatus.EMPTY_INPUT],
            detail={
                "status": ResolutionStatus.EMPTY_INPUT.value,
                "message": USER_MESSAGES[ResolutionStatus.EMPTY_INPUT],
                "lot_number": base,
            },
        )

    return LotVariantsResponse(
        raw_input=lot_number,
        lot_number=base,
        variants=candidate_variants(base),
        lookup_plan=[step.label for step in resolver.lookup_plan],
    )
