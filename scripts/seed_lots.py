"""Seed the local SQLite lot store with sample lots.

Usage:
    python scripts/seed_lots.py [--db-path lot_store.db] [--clear]

Options:
    --clear    Delete existing documents of the sample collections first
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from lot_resolver.db import (
    SAMPLE_LOTS,
    clear_collection,
    init_lot_store_db,
    seed_sample_lots,
)


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Seed sample lots")
    parser.add_argument(
        "--db-path",
        type=Path,
        help="SQLite lot store (default: LOT_STORE_DB_PATH)"
    )
    parser.add_argument(
        "--clear",
        action="store_true",
        help="Clear the sample collections before seeding"
    )

    args = parser.parse_args()
    db_path = args.db_path or load_settings().store_db_path

    init_lot_store_db(db_path)
    if args.clear:
        for collection in SAMPLE_LOTS:
            removed = clear_collection(collection, db_path=db_path)
            print(f"Cleared {removed} documents from '{collection}'")

    created = seed_sample_lots(db_path)
    for collection, count in created.items():
        print(f"Seeded {count} documents into '{collection}'")
    print(f"Lot store: {db_path}")


if __name__ == "__main__":
    main()
