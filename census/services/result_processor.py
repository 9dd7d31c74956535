"""Processing cycle for stored census results.

A cycle runs in two phases:

1. **Deduplicate** every stored result in one transaction.
2. **Decompose** each remaining unprocessed result, oldest first, each in
   its own transaction covering device resolution (and purge), row
   insertion and the processed mark.

A failing result (bad compression, invalid JSON, schema errors, a violated
post-condition or a database error) is rolled back, logged and left
unprocessed for the next cycle; the remaining results still run.

Cycles started in the same process are serialized. Across processes the
per-result transaction isolation and the conditional processed mark keep two
workers from committing the same result twice.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from census.config import get_settings
from census.exceptions import InvariantViolation
from census.models.database import RawResult
from census.models.submission import parse_submission
from census.services.blob_store import BlobStore, decompress
from census.services.decomposer import Decomposer
from census.services.deduplicator import DeduplicationStats, Deduplicator
from census.services.device_resolver import DeviceResolver
from census.services.name_normalizer import normalize

logger = logging.getLogger(__name__)

_cycle_lock = asyncio.Lock()


@dataclass
class CycleStats:
    """Outcome of one processing cycle."""

    deduplication: DeduplicationStats | None = None
    processed_ids: list[int] = field(default_factory=list)
    failed_ids: list[int] = field(default_factory=list)
    skipped_ids: list[int] = field(default_factory=list)


class ResultProcessor:
    """Runs processing cycles with sessions from a session factory.

    Attributes:
        session_factory: Factory for the dedicated sessions of each phase and
            each result (never a request session).
        isolation_level: Isolation level of each result's transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        isolation_level: str | None = None,
    ):
        self.session_factory = session_factory
        self.isolation_level = isolation_level or get_settings().ingest_isolation_level

    async def process_result(self, result_id: int) -> dict[str, int] | None:
        """Decompose one result atomically.

        Returns:
            Rows written per section, or ``None`` when the result no longer
            exists or is already processed.

        Raises:
            MalformedPayloadError: If the payload does not inflate or validate.
            InvariantViolation: If a post-condition fails or the result was
                changed concurrently.
        """
        async with self.session_factory() as db:
            async with db.begin():
                await db.connection(
                    execution_options={"isolation_level": self.isolation_level}
                )

                result = await db.get(RawResult, result_id)
                if result is None or result.processed:
                    return None

                submission = parse_submission(decompress(result.payload))
                name = normalize(submission.device_name)

                device = await DeviceResolver(db).resolve(name, submission.system_properties)
                counts = await Decomposer(db).decompose(device, submission)

                marked = await db.execute(
                    update(RawResult)
                    .where(RawResult.id == result_id, RawResult.processed.is_(False))
                    .values(processed=True, processed_at=datetime.utcnow()),
                    execution_options={"synchronize_session": False},
                )
                if marked.rowcount != 1:
                    raise InvariantViolation(
                        f"Result {result_id} was removed or processed concurrently"
                    )

                logger.info(
                    f"Processed result {result_id} into device {device.id} ({name}): {counts}"
                )
                return counts

    async def deduplicate(self) -> DeduplicationStats:
        async with self.session_factory() as db:
            async with db.begin():
                return await Deduplicator(db).deduplicate()

    async def unprocessed_ids(self) -> list[int]:
        async with self.session_factory() as db:
            return await BlobStore(db).list_unprocessed_ids()

    async def run_cycle(self) -> CycleStats:
        """Deduplicate, then process every unprocessed result.

        Never raises for a single result's failure.
        """
        stats = CycleStats()
        async with _cycle_lock:
            logger.info("Starting result processing cycle")
            try:
                stats.deduplication = await self.deduplicate()
            except Exception:
                logger.exception("Deduplication failed, skipping decomposition this cycle")
                return stats

            logger.info(
                f"Deduplication removed {stats.deduplication.duplicates_removed} results "
                f"in {stats.deduplication.groups_processed} groups"
            )

            for result_id in await self.unprocessed_ids():
                try:
                    counts = await self.process_result(result_id)
                except Exception:
                    logger.exception(f"Failed to process result {result_id}")
                    stats.failed_ids.append(result_id)
                    continue
                if counts is None:
                    stats.skipped_ids.append(result_id)
                else:
                    stats.processed_ids.append(result_id)

            logger.info(
                f"Processing cycle finished: {len(stats.processed_ids)} processed, "
                f"{len(stats.failed_ids)} failed, {len(stats.skipped_ids)} skipped"
            )
        return stats


async def run_processing_cycle(
    session_factory: async_sessionmaker[AsyncSession],
    isolation_level: str | None = None,
) -> CycleStats:
    """Execute a processing cycle as a background task."""
    return await ResultProcessor(session_factory, isolation_level).run_cycle()
