"""Storage of raw census submissions.

Clients deflate the JSON document with zlib before posting it; the bytes are
stored exactly as received and only inflated when a result is read back or
processed.
"""

import hashlib
import logging
import zlib

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from census.exceptions import MalformedPayloadError, ResultNotFoundError
from census.models.database import RawResult

logger = logging.getLogger(__name__)


def content_hash(payload: bytes) -> str:
    """SHA-256 hex digest of a stored payload."""
    return hashlib.sha256(payload).hexdigest()


def compress(document: bytes) -> bytes:
    """Deflate a document the way census clients do."""
    return zlib.compress(document)


def decompress(payload: bytes) -> bytes:
    """Inflate a stored payload.

    Raises:
        MalformedPayloadError: If the payload is not a zlib stream.
    """
    try:
        return zlib.decompress(payload)
    except zlib.error as e:
        raise MalformedPayloadError(f"Payload is not zlib-compressed: {e}") from e


class BlobStore:
    """Reads and writes ``RawResult`` rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit(self, payload: bytes) -> int:
        """Store a compressed submission as unprocessed.

        Args:
            payload: Compressed document, stored verbatim.

        Returns:
            Id of the new result.
        """
        result = RawResult(
            payload=payload,
            content_hash=content_hash(payload),
            processed=False,
        )
        self.db.add(result)
        await self.db.flush()
        logger.info(f"Stored result {result.id} ({len(payload)} bytes)")
        return result.id

    async def get(self, result_id: int) -> RawResult:
        """Load a result row.

        Raises:
            ResultNotFoundError: If no result has this id.
        """
        result = await self.db.get(RawResult, result_id)
        if result is None:
            raise ResultNotFoundError(result_id)
        return result

    async def fetch(self, result_id: int) -> bytes:
        """Return the decompressed document of a result.

        Raises:
            ResultNotFoundError: If no result has this id.
            MalformedPayloadError: If the stored payload does not inflate.
        """
        result = await self.get(result_id)
        return decompress(result.payload)

    async def list_unprocessed_ids(self) -> list[int]:
        """Ids of all unprocessed results, oldest first."""
        rows = await self.db.execute(
            select(RawResult.id)
            .where(RawResult.processed.is_(False))
            .order_by(RawResult.id)
        )
        return list(rows.scalars().all())

    async def stats(self) -> dict[str, int]:
        """Count results by processed flag."""
        rows = await self.db.execute(
            select(RawResult.processed, func.count()).group_by(RawResult.processed)
        )
        counts = {bool(processed): count for processed, count in rows.all()}
        processed = counts.get(True, 0)
        unprocessed = counts.get(False, 0)
        return {
            "total": processed + unprocessed,
            "processed": processed,
            "unprocessed": unprocessed,
        }
