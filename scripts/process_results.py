#!/usr/bin/env python3
"""Run a census processing cycle outside the API server.

Collapses content-identical raw results and decomposes every unprocessed
result into device rows, exactly like ``/api/results/process``.

Usage:
    python scripts/process_results.py --dry-run   # Report duplicates only
    python scripts/process_results.py --execute   # Deduplicate and process
"""

import argparse
import asyncio
import logging
import sys

# Allow running from project root
sys.path.insert(0, ".")

from census.config import get_settings
from census.database import async_session_factory, engine, init_models
from census.services.blob_store import BlobStore
from census.services.deduplicator import Deduplicator
from census.services.result_processor import ResultProcessor

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

settings = get_settings()


async def preview() -> None:
    """Report duplicate groups and pending results without writing."""
    async with async_session_factory() as db:
        dedup = await Deduplicator(db).deduplicate(dry_run=True)
        stats = await BlobStore(db).stats()
        await db.rollback()

    logger.info("\n=== Processing DRY RUN ===")
    logger.info(f"  Duplicate groups:      {dedup.groups_processed}")
    logger.info(f"  Duplicates to remove:  {dedup.duplicates_removed}")
    logger.info(f"  Unprocessed results:   {stats['unprocessed']}")


async def execute() -> None:
    """Run one full processing cycle."""
    processor = ResultProcessor(async_session_factory, settings.ingest_isolation_level)
    cycle = await processor.run_cycle()

    logger.info("\n=== Processing EXECUTED ===")
    if cycle.deduplication is None:
        logger.info("  Deduplication failed; no results processed.")
        return
    logger.info(f"  Hashes backfilled:     {cycle.deduplication.hashes_backfilled}")
    logger.info(f"  Duplicates removed:    {cycle.deduplication.duplicates_removed}")
    logger.info(f"  Results processed:     {len(cycle.processed_ids)}")
    logger.info(f"  Results failed:        {len(cycle.failed_ids)}")
    if cycle.failed_ids:
        logger.info(f"  Failed ids:            {cycle.failed_ids}")


async def run(dry_run: bool) -> None:
    await init_models()
    try:
        if dry_run:
            await preview()
        else:
            await execute()
    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Process stored census results")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--dry-run", action="store_true", help="Preview changes only")
    group.add_argument("--execute", action="store_true", help="Apply changes")
    args = parser.parse_args()

    asyncio.run(run(dry_run=args.dry_run))


if __name__ == "__main__":
    main()
