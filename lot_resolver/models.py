"""Lot Resolver Data Models.

This module defines the Pydantic models for lot resolution:
- ResolutionStatus: How a resolution attempt ended
- LookupStep: One (collection, field) pair of the lookup plan
- StoredDocument: A raw document returned by a document source
- LotResolution: The result of lot resolution
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.models.lot import LotRecord


class ResolutionStatus(str, Enum):
    """How a resolution attempt ended."""
    FOUND = "found"                # A record matched
    EMPTY_INPUT = "empty_input"    # Nothing left after sanitizing
    NOT_FOUND = "not_found"        # Every step of the plan came back empty
    TIMED_OUT = "timed_out"        # Deadline passed before the plan finished
    QUERY_FAILED = "query_failed"  # The store raised, or returned unreadable data


# User-facing messages shown by the lot detail page
USER_MESSAGES = {
    ResolutionStatus.FOUND: None,
    ResolutionStatus.EMPTY_INPUT: "Numéro de lot manquant",
    ResolutionStatus.NOT_FOUND: "Le lot n'existe pas ou n'a pas pu être trouvé.",
    ResolutionStatus.TIMED_OUT: "Le temps de chargement a expiré. Veuillez réessayer.",
    ResolutionStatus.QUERY_FAILED: "Une erreur est survenue lors de la récupération des données du lot.",
}


class LookupStep(BaseModel):
    """One step of the lookup plan: query `collection` where `field` in variants."""
    collection: str
    field: str

    @property
    def label(self) -> str:
        return f"{self.collection}.{self.field}"


class StoredDocument(BaseModel):
    """A document as returned by a document source."""
    id: str = Field(..., description="Document key inside its collection")
    data: Dict[str, Any] = Field(default_factory=dict)


class LotResolution(BaseModel):
    """Result of lot resolution.

    Exactly one of the ResolutionStatus outcomes. When status is FOUND,
    `record` holds the matched lot and `collection`/`field`/`document_id`
    tell where it was found. Otherwise `message` carries the text to show
    the user and `error` the technical detail (for QUERY_FAILED).

    Attributes:
        status: Outcome of the attempt
        raw_input: Identifier as received
        lot_number: Sanitized base string
        variants: Spellings that were (or would have been) queried
        record: Matched lot (FOUND only)
        collection: Collection of the matching step
        field: Field of the matching step
        document_id: Key of the matched document
        queries_issued: Number of store queries started
        error: Technical error detail
        message: User-facing message
    """
    status: ResolutionStatus
    raw_input: Optional[str] = None
    lot_number: str = Field(default="", description="Sanitized lot number")
    variants: List[str] = Field(default_factory=list)

    record: Optional[LotRecord] = None
    collection: Optional[str] = None
    field: Optional[str] = None
    document_id: Optional[str] = None

    queries_issued: int = 0
    error: Optional[str] = None
    message: Optional[str] = None

    resolved_at: Optional[datetime] = None
    resolution_time_ms: Optional[int] = None

    @property
    def is_found(self) -> bool:
        return self.status == ResolutionStatus.FOUND and self.record is not None
