"""Resolve a lot number from the command line.

Runs the same resolver as the API against the configured store and prints
how the lot was (or was not) found, followed by its timeline.

Usage:
    python scripts/resolve_lot.py "lot 2024 001"
    python scripts/resolve_lot.py LOT-2024-001 --backend firestore --project my-project
    python scripts/resolve_lot.py LOT-2023-117 --db-path lot_store.db --timeout 5
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.config import load_settings
from lot_resolver import LotResolver, ResolutionStatus, create_firestore_source
from lot_resolver.db import SQLiteDocumentSource
from lot_timeline import assemble_timeline


def print_timeline(record) -> None:
    timeline = assemble_timeline(record)

    print()
    print(f"Progression: {timeline.progress_percent:.0f}% "
          f"({timeline.completed_count} sur {timeline.total_stages} étapes complétées)")
    print(f"Statut: {timeline.status_label} ({timeline.status.value})")
    print()
    for stage in timeline.stages:
        mark = "✓" if stage.completed else "·"
        date = stage.date if stage.date is not None else "En attente"
        print(f"  {mark} {stage.title:<10} {date}")
        print(f"      {stage.details}")

    if timeline.out_of_order_stages:
        print()
        print(f"⚠ Out-of-order stages: {', '.join(timeline.out_of_order_stages)}")


async def resolve_and_print(raw_id: str, settings) -> int:
    if settings.store_backend == "firestore":
        source = create_firestore_source(settings.firestore_project_id)
    else:
        source = SQLiteDocumentSource(settings.store_db_path)

    resolver = LotResolver(source, settings=settings)
    resolution = await resolver.resolve(raw_id)

    print(resolver.explain_resolution(resolution))
    if resolution.status == ResolutionStatus.FOUND:
        print_timeline(resolution.record)
        return 0
    return 1


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Resolve a lot number")
    parser.add_argument("lot_number", help="Lot number as typed or scanned")
    parser.add_argument(
        "--backend",
        choices=["sqlite", "firestore"],
        help="Document store (default: LOT_STORE_BACKEND)"
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        help="SQLite lot store (default: LOT_STORE_DB_PATH)"
    )
    parser.add_argument(
        "--project",
        help="Firestore project ID (default: FIRESTORE_PROJECT_ID)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Resolution deadline in seconds (default: LOT_RESOLVE_TIMEOUT_SECONDS)"
    )

    args = parser.parse_args()

    overrides = {}
    if args.backend:
        overrides["store_backend"] = args.backend
    if args.db_path:
        overrides["store_db_path"] = args.db_path
    if args.project:
        overrides["firestore_project_id"] = args.project
    if args.timeout:
        overrides["resolve_timeout_seconds"] = args.timeout

    settings = load_settings().model_copy(update=overrides)
    sys.exit(asyncio.run(resolve_and_print(args.lot_number, settings)))


if __name__ == "__main__":
    main()
