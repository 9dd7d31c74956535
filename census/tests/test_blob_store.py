"""
Tests for raw result storage.
"""

import zlib

import pytest

from census.exceptions import MalformedPayloadError, ResultNotFoundError
from census.services.blob_store import BlobStore, content_hash, decompress


class TestPayloadHelpers:
    """Tests for hashing and inflating payloads."""

    def test_content_hash_is_sha256_hex(self):
        """Test the content hash is a 64 character hex digest."""
        digest = content_hash(b"payload")
        assert len(digest) == 64
        assert digest == content_hash(b"payload")
        assert digest != content_hash(b"payload2")

    def test_decompress(self):
        """Test a zlib stream inflates to the original bytes."""
        assert decompress(zlib.compress(b'{"device_name": "x"}')) == b'{"device_name": "x"}'

    def test_decompress_rejects_plain_bytes(self):
        """Test non-zlib payloads raise MalformedPayloadError."""
        with pytest.raises(MalformedPayloadError):
            decompress(b"not compressed")


class TestBlobStore:
    """Tests for BlobStore against the database."""

    @pytest.mark.asyncio
    async def test_submit_stores_unprocessed(self, session_factory):
        """Test a submission is stored verbatim, hashed and unprocessed."""
        payload = zlib.compress(b"{}")
        async with session_factory() as db:
            result_id = await BlobStore(db).submit(payload)
            await db.commit()

        async with session_factory() as db:
            result = await BlobStore(db).get(result_id)
            assert result.payload == payload
            assert result.content_hash == content_hash(payload)
            assert result.processed is False
            assert result.processed_at is None

    @pytest.mark.asyncio
    async def test_fetch_returns_document(self, session_factory, store_result):
        """Test fetch returns the decompressed document."""
        result_id = await store_result(zlib.compress(b'{"device_name": "a"}'))
        async with session_factory() as db:
            assert await BlobStore(db).fetch(result_id) == b'{"device_name": "a"}'

    @pytest.mark.asyncio
    async def test_fetch_missing(self, session_factory):
        """Test fetching an unknown id raises ResultNotFoundError."""
        async with session_factory() as db:
            with pytest.raises(ResultNotFoundError):
                await BlobStore(db).fetch(999)

    @pytest.mark.asyncio
    async def test_fetch_malformed(self, session_factory, store_result):
        """Test fetching an uncompressed payload raises MalformedPayloadError."""
        result_id = await store_result(b"plain text")
        async with session_factory() as db:
            with pytest.raises(MalformedPayloadError):
                await BlobStore(db).fetch(result_id)

    @pytest.mark.asyncio
    async def test_list_unprocessed_and_stats(self, session_factory, store_result):
        """Test unprocessed ids are listed oldest first and counted."""
        first = await store_result(zlib.compress(b"1"))
        second = await store_result(zlib.compress(b"2"))

        async with session_factory() as db:
            store = BlobStore(db)
            assert await store.list_unprocessed_ids() == [first, second]
            assert await store.stats() == {"total": 2, "processed": 0, "unprocessed": 2}
