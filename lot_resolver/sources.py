"""Document Sources for Lot Resolution.

A document source answers one question: "which documents of collection C
have field F equal to one of these values?". The resolver depends only on
the DocumentSource protocol; concrete sources are injected:

- FirestoreDocumentSource: production store (google-cloud-firestore)
- SQLiteDocumentSource (lot_resolver.db): local development and demo data
- InMemoryDocumentSource: tests

Field paths are dotted ("harvest.lotNumber"). The identity field "id" also
matches the document key when the stored data has no "id" of its own.
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter

from core.observability.logging import get_logger
from lot_resolver.models import StoredDocument
from lot_resolver.normalize import MAX_VARIANTS


logger = get_logger(__name__)

IDENTITY_FIELD = "id"


class DocumentQueryError(Exception):
    """A document store query failed (transport, permission, bad query)."""
    def __init__(self, message: str, collection: str = "", field: str = ""):
        super().__init__(message)
        self.collection = collection
        self.field = field


class DocumentSource(Protocol):
    """Protocol for batched "field in values" lookups."""

    async def find_in(
        self,
        collection: str,
        field: str,
        values: Sequence[str],
    ) -> List[StoredDocument]:
        """Return every document of `collection` whose `field` is in `values`.

        Raises:
            DocumentQueryError: If the store cannot answer
        """
        ...


def get_field(data: Dict[str, Any], field_path: str) -> Any:
    """Read a dotted field path from a nested mapping (None if missing)."""
    value: Any = data
    for part in field_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def chunked(values: Sequence[str], size: int = MAX_VARIANTS) -> Iterable[List[str]]:
    """Split values into lists of at most `size` items."""
    values = list(values)
    for start in range(0, len(values), size):
        yield values[start:start + size]


# =============================================================================
# In-Memory Source
# =============================================================================

class InMemoryDocumentSource:
    """Dict-backed document source.

    Documents are kept per collection in insertion order, so results come
    back in a stable order. Every call is recorded in `queries` as a
    (collection, field, values) tuple.

    Example:
        source = InMemoryDocumentSource({
            "lots": {"doc-1": {"harvest": {"lotNumber": "LOT-2024-001"}}},
        })
        docs = await source.find_in("lots", "harvest.lotNumber", ["LOT-2024-001"])
    """

    def __init__(
        self,
        collections: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None,
        latency_seconds: float = 0.0,
    ):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {
            name: dict(docs) for name, docs in (collections or {}).items()
        }
        self.latency_seconds = latency_seconds
        self.queries: List[Tuple[str, str, Tuple[str, ...]]] = []

    def add(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Store (or replace) a document."""
        self.collections.setdefault(collection, {})[doc_id] = data

    async def find_in(
        self,
        collection: str,
        field: str,
        values: Sequence[str],
    ) -> List[StoredDocument]:
        self.queries.append((collection, field, tuple(values)))

        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        wanted = set(values)
        matches = []
        for doc_id, data in self.collections.get(collection, {}).items():
            value = get_field(data, field)
            if value is None and field == IDENTITY_FIELD:
                value = doc_id
            if isinstance(value, str) and value in wanted:
                matches.append(StoredDocument(id=doc_id, data=data))

        return matches


# =============================================================================
# Firestore Source
# =============================================================================

class FirestoreDocumentSource:
    """Document source backed by a Firestore AsyncClient.

    The client is injected; create it once per process:

        from google.cloud import firestore
        source = FirestoreDocumentSource(firestore.AsyncClient(project="my-project"))

    Each lookup is one "in" query per chunk of at most 30 values. The
    identity field queries the stored "id" field first and falls back to
    fetching documents whose key is one of the values. The client's default
    retry is disabled: a failed call surfaces at once as DocumentQueryError.
    """

    def __init__(self, client):
        self.client = client

    async def find_in(
        self,
        collection: str,
        field: str,
        values: Sequence[str],
    ) -> List[StoredDocument]:
        try:
            matches = await self._query_field(collection, field, values)
            if not matches and field == IDENTITY_FIELD:
                matches = await self._get_by_keys(collection, values)
        except google_exceptions.GoogleAPIError as e:
            raise DocumentQueryError(
                f"Firestore query on {collection}.{field} failed: {e}",
                collection=collection,
                field=field,
            ) from e

        return matches

    async def _query_field(
        self,
        collection: str,
        field: str,
        values: Sequence[str],
    ) -> List[StoredDocument]:
        matches = []
        for chunk in chunked(values):
            query = self.client.collection(collection).where(filter=FieldFilter(field, "in", chunk))
            async for snapshot in query.stream(retry=None):
                matches.append(StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {}))
        return matches

    async def _get_by_keys(self, collection: str, values: Sequence[str]) -> List[StoredDocument]:
        refs = [self.client.collection(collection).document(value) for value in values]
        found = {}
        async for snapshot in self.client.get_all(refs, retry=None):
            if snapshot.exists:
                found[snapshot.id] = snapshot.to_dict() or {}

        # get_all does not preserve request order
        return [
            StoredDocument(id=value, data=found[value])
            for value in values
            if value in found
        ]


def create_firestore_source(project_id: Optional[str] = None) -> FirestoreDocumentSource:
    """Create a Firestore source using application default credentials."""
    from google.cloud import firestore

    logger.info("Connecting to Firestore", extra_fields={"project_id": project_id or "(default)"})
    return FirestoreDocumentSource(firestore.AsyncClient(project=project_id))
