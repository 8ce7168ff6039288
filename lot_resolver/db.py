"""Local Lot Document Store (SQLite).

This module keeps lot documents as JSON in a single SQLite table so the
resolver and API can run without Firestore:
- Schema initialization
- Document writes and collection cleanup
- SQLiteDocumentSource for "field in values" lookups via json_extract
- Sample lot seeding

Documents keep the exact shape they have in Firestore (camelCase fields,
nested stage objects, ISO-8601 timestamps).
"""

import asyncio
import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Sequence

from core.config import DEFAULT_STORE_DB_PATH
from core.observability.logging import get_logger
from lot_resolver.models import StoredDocument
from lot_resolver.sources import DocumentQueryError, IDENTITY_FIELD


logger = get_logger(__name__)

DEFAULT_DB_PATH = DEFAULT_STORE_DB_PATH


def init_lot_store_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """Initialize the lot document table.

    Creates:
    - lot_documents: one row per (collection, doc_id) with the JSON body

    Args:
        db_path: Path to SQLite database file
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lot_documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                data TEXT NOT NULL,
                PRIMARY KEY (collection, doc_id)
            )
        """)

        conn.commit()
        logger.debug("Lot store tables initialized", extra_fields={"db_path": str(db_path)})

    finally:
        conn.close()


# =============================================================================
# Writes
# =============================================================================

def put_document(
    collection: str,
    doc_id: str,
    data: Dict[str, Any],
    db_path: Path = DEFAULT_DB_PATH,
) -> None:
    """Insert or replace one document.

    Args:
        collection: Collection name (e.g. "lots")
        doc_id: Document key
        data: JSON-serializable document body (datetimes are stored as ISO strings)
        db_path: Path to database
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT OR REPLACE INTO lot_documents (collection, doc_id, data)
            VALUES (?, ?, ?)
        """, (collection, doc_id, json.dumps(data, default=_json_default)))
        conn.commit()
    finally:
        conn.close()


def clear_collection(collection: str, db_path: Path = DEFAULT_DB_PATH) -> int:
    """Delete every document of a collection.

    Returns:
        Number of deleted documents
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM lot_documents WHERE collection = ?", (collection,))
        conn.commit()
        return cursor.rowcount
    finally:
        conn.close()


def _json_default(value):
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


# =============================================================================
# Lookups
# =============================================================================

def _json_path(field_path: str) -> str:
    """Build a quoted JSON path: "harvest.lotNumber" → '$."harvest"."lotNumber"'."""
    parts = [part.replace('"', '\\"') for part in field_path.split(".")]
    return "$." + ".".join(f'"{part}"' for part in parts)


def find_documents(
    collection: str,
    field_path: str,
    values: Sequence[str],
    db_path: Path = DEFAULT_DB_PATH,
) -> List[StoredDocument]:
    """Find documents whose field is one of `values` (insertion order).

    The identity field also matches the document key when the body has no
    "id" of its own.

    Raises:
        DocumentQueryError: If SQLite fails (missing table, locked file...)
    """
    if not values:
        return []

    target = "json_extract(data, ?)"
    if field_path == IDENTITY_FIELD:
        target = "COALESCE(json_extract(data, ?), doc_id)"

    placeholders = ", ".join("?" for _ in values)
    sql = f"""
        SELECT doc_id, data FROM lot_documents
        WHERE collection = ? AND {target} IN ({placeholders})
        ORDER BY rowid
    """

    try:
        conn = sqlite3.connect(db_path)
    except sqlite3.Error as e:
        raise DocumentQueryError(f"Cannot open lot store {db_path}: {e}", collection, field_path) from e

    try:
        cursor = conn.cursor()
        cursor.execute(sql, (collection, _json_path(field_path), *values))
        return [
            StoredDocument(id=doc_id, data=json.loads(data))
            for doc_id, data in cursor.fetchall()
        ]
    except sqlite3.Error as e:
        raise DocumentQueryError(
            f"SQLite query on {collection}.{field_path} failed: {e}",
            collection=collection,
            field=field_path,
        ) from e
    finally:
        conn.close()


class SQLiteDocumentSource:
    """DocumentSource over the local SQLite lot store.

    Queries run in a worker thread so a slow disk never blocks the event
    loop; a result that arrives after the resolver's deadline is dropped.
    """

    def __init__(self, db_path: Path = DEFAULT_DB_PATH):
        self.db_path = db_path

    async def find_in(
        self,
        collection: str,
        field: str,
        values: Sequence[str],
    ) -> List[StoredDocument]:
        return await asyncio.to_thread(find_documents, collection, field, list(values), self.db_path)


# =============================================================================
# Sample Data Seeding
# =============================================================================

SAMPLE_LOTS = {
    "lots": {
        "lot-2024-001": {
            "lotNumber": "LOT-2024-001",
            "harvest": {
                "lotNumber": "LOT-2024-001",
                "harvestDate": "2024-03-04T07:30:00",
                "farmLocation": "Ferme Sidi Slimane",
                "variety": "Hass",
            },
            "transport": {
                "arrivalDateTime": "2024-03-04T15:10:00",
                "vehicleId": "TR-4521",
                "driverName": "Youssef Amrani",
            },
            "sorting": {
                "sortingDate": "2024-03-05T09:00:00",
                "qualityGrade": "Extra",
                "rejectedQuantity": 42,
            },
            "packaging": {
                "packagingDate": "2024-03-05T16:45:00",
                "netWeight": 4000,
                "packagingType": "Carton 4kg",
            },
            "storage": {
                "entryDate": "2024-03-06T08:00:00",
                "storageZone": "Chambre froide B",
                "temperature": 6,
            },
            "export": {
                "loadingDate": "2024-03-08T11:20:00",
                "destination": "Rotterdam",
                "containerNumber": "MSCU1234567",
            },
            "delivery": {
                "actualDeliveryDate": "2024-03-15T10:00:00",
                "customerName": "FreshFruit BV",
            },
        },
        "lot-2024-002": {
            "lotNumber": "LOT-2024-002",
            "harvest": {
                "lotNumber": "LOT-2024-002",
                "harvestDate": "2024-03-10T07:00:00",
                "farmLocation": "Ferme Larache",
                "variety": "Fuerte",
            },
            "transport": {"arrivalDateTime": "2024-03-10T14:00:00"},
            "sorting": {"sortingDate": None},
            "packaging": {},
            "storage": {},
            "export": {},
            "delivery": {},
        },
    },
    "avocado-tracking": {
        "AVT-0007": {
            "harvest": {
                "lotNumber": "LOT 2023 117",
                "harvestDate": "2023-11-20",
                "farmLocation": "Ferme Kenitra",
                "variety": "Hass",
            },
            "transport": {"arrivalDateTime": "2023-11-20T18:00:00"},
            "sorting": {},
            "packaging": {},
            "storage": {},
            "export": {"loadingDate": "2023-11-25T06:30:00", "destination": "Marseille"},
            "delivery": {},
        },
    },
}


def seed_sample_lots(db_path: Path = DEFAULT_DB_PATH) -> dict:
    """Seed the local store with sample lots.

    Creates a fully delivered lot and a lot still in transport in "lots",
    and a legacy record (out-of-order export) in "avocado-tracking".

    Args:
        db_path: Path to database

    Returns:
        Dict with count of seeded documents per collection
    """
    init_lot_store_db(db_path)

    created = {}
    for collection, documents in SAMPLE_LOTS.items():
        for doc_id, data in documents.items():
            put_document(collection, doc_id, data, db_path=db_path)
        created[collection] = len(documents)

    logger.info("Seeded sample lots", extra_fields=created)
    return created
