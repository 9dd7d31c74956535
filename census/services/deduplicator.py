"""Collapse content-identical raw results before processing.

Clients retry uploads, so the same compressed document can be stored several
times. Results sharing a SHA-256 ``content_hash`` form a duplicate group;
each group keeps exactly one survivor and the other members are deleted:

- if any member is processed, the lowest-id processed member survives
  (its document is already decomposed);
- otherwise the lowest-id member survives and is processed later in the
  same cycle.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from census.models.database import RawResult
from census.services.blob_store import content_hash

logger = logging.getLogger(__name__)


@dataclass
class DuplicateMember:
    """One result of a duplicate group."""

    id: int
    processed: bool


@dataclass
class DeduplicationStats:
    """Summary of one deduplication pass."""

    hashes_backfilled: int = 0
    groups_processed: int = 0
    duplicates_removed: int = 0
    removed_ids: list[int] = field(default_factory=list)


def pick_survivor(members: list[DuplicateMember]) -> DuplicateMember:
    """Choose the member of a duplicate group to keep.

    Args:
        members: Non-empty group members in any order.

    Returns:
        The lowest-id processed member, or the lowest-id member when none is
        processed.
    """
    ordered = sorted(members, key=lambda m: m.id)
    for member in ordered:
        if member.processed:
            return member
    return ordered[0]


class Deduplicator:
    """Runs a deduplication pass over every stored result."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def backfill_hashes(self) -> int:
        """Compute ``content_hash`` for results stored without one."""
        rows = await self.db.execute(
            select(RawResult.id, RawResult.payload).where(
                RawResult.content_hash.is_(None)
            )
        )
        count = 0
        for result_id, payload in rows.all():
            await self.db.execute(
                update(RawResult)
                .where(RawResult.id == result_id)
                .values(content_hash=content_hash(payload))
            )
            count += 1
        return count

    async def find_duplicate_groups(self) -> list[str]:
        """Hashes shared by more than one result."""
        rows = await self.db.execute(
            select(RawResult.content_hash)
            .where(RawResult.content_hash.is_not(None))
            .group_by(RawResult.content_hash)
            .having(func.count() > 1)
            .order_by(RawResult.content_hash)
        )
        return list(rows.scalars().all())

    async def get_group_members(self, digest: str) -> list[DuplicateMember]:
        """All results with the given hash, ordered by id."""
        rows = await self.db.execute(
            select(RawResult.id, RawResult.processed)
            .where(RawResult.content_hash == digest)
            .order_by(RawResult.id)
        )
        return [DuplicateMember(id=i, processed=bool(p)) for i, p in rows.all()]

    async def deduplicate(self, dry_run: bool = False) -> DeduplicationStats:
        """Collapse every duplicate group to its survivor.

        The caller owns the transaction; nothing is committed here.

        Args:
            dry_run: Report what would be removed without deleting.

        Returns:
            Statistics of the pass.
        """
        stats = DeduplicationStats()
        if not dry_run:
            stats.hashes_backfilled = await self.backfill_hashes()

        groups = await self.find_duplicate_groups()
        logger.info(f"Found {len(groups)} duplicate groups")

        for digest in groups:
            members = await self.get_group_members(digest)
            if len(members) < 2:
                continue

            survivor = pick_survivor(members)
            dup_ids = [m.id for m in members if m.id != survivor.id]

            logger.info(
                f"  Group {digest[:16]}... : {len(members)} results -> "
                f"keeping {survivor.id}, removing {len(dup_ids)}"
            )

            if not dry_run:
                await self.db.execute(
                    delete(RawResult).where(RawResult.id.in_(dup_ids))
                )

            stats.groups_processed += 1
            stats.duplicates_removed += len(dup_ids)
            stats.removed_ids.extend(dup_ids)

        return stats
