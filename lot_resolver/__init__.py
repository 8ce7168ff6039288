"""Lot Resolver - find a lot record from a scanned or typed lot number.

Lot numbers were stored over the years under several spellings and
fields, so this package resolves a raw identifier by:
- Sanitizing it to letters, digits and hyphens
- Expanding it into a fixed set of spelling variants
- Querying an ordered plan of (collection, field) pairs until one matches
- Bounding the whole lookup by a single deadline

Usage:
    from lot_resolver import LotResolver, ResolutionStatus
    from lot_resolver.db import SQLiteDocumentSource

    resolver = LotResolver(SQLiteDocumentSource())
    resolution = await resolver.resolve("lot 2024 001")

    if resolution.status == ResolutionStatus.FOUND:
        record = resolution.record
    else:
        print(resolution.message)
"""

from lot_resolver.models import (
    LookupStep,
    LotResolution,
    ResolutionStatus,
    StoredDocument,
    USER_MESSAGES,
)
from lot_resolver.normalize import (
    MAX_VARIANTS,
    candidate_variants,
    sanitize_lot_number,
)
from lot_resolver.sources import (
    DocumentQueryError,
    DocumentSource,
    FirestoreDocumentSource,
    InMemoryDocumentSource,
    create_firestore_source,
)
from lot_resolver.resolver import LOOKUP_PLAN, LotResolver, build_lookup_plan

__all__ = [
    # Models
    "LookupStep",
    "LotResolution",
    "ResolutionStatus",
    "StoredDocument",
    "USER_MESSAGES",
    # Normalization
    "MAX_VARIANTS",
    "candidate_variants",
    "sanitize_lot_number",
    # Sources
    "DocumentQueryError",
    "DocumentSource",
    "FirestoreDocumentSource",
    "InMemoryDocumentSource",
    "create_firestore_source",
    # Resolver
    "LOOKUP_PLAN",
    "LotResolver",
    "build_lookup_plan",
]
