"""
Tests for census statistics.
"""

import pytest

from census.models.database import Permission
from census.services.aggregator import Aggregator
from census.services.result_processor import ResultProcessor
from census.tests.conftest import make_submission


def _device(name: str, release: str, manufacturer: str) -> dict:
    return make_submission(
        device_name=name,
        system_properties={
            "ro.build.description": f"{name} {release} release-keys",
            "ro.build.version.release": release,
            "ro.product.manufacturer": manufacturer,
        },
    )


@pytest.fixture
def seed(session_factory, store_result):
    async def _seed(*documents):
        for document in documents:
            await store_result(document)
        await ResultProcessor(session_factory, "SERIALIZABLE").run_cycle()

    return _seed


class TestAggregator:
    """Tests for grouped counts."""

    @pytest.mark.asyncio
    async def test_os_versions(self, session_factory, seed):
        """Test devices are counted per release, most frequent first."""
        await seed(
            _device("Device A", "6.0", "asus"),
            _device("Device B", "7.0", "asus"),
            _device("Device C", "6.0", "asus"),
        )

        async with session_factory() as db:
            assert await Aggregator(db).os_versions() == [("6.0", 2), ("7.0", 1)]

    @pytest.mark.asyncio
    async def test_manufacturers_case_insensitive(self, session_factory, seed):
        """Test manufacturers differing only by case are counted together."""
        await seed(
            _device("Device A", "6.0", "samsung"),
            _device("Device B", "6.0", "Samsung"),
            _device("Device C", "6.0", "LGE"),
        )

        async with session_factory() as db:
            assert await Aggregator(db).manufacturers() == [("SAMSUNG", 2), ("LGE", 1)]

    @pytest.mark.asyncio
    async def test_ties_sorted_by_label(self, session_factory, seed):
        """Test equal counts are ordered by label."""
        await seed(
            _device("Device A", "8.0", "x"),
            _device("Device B", "5.1", "x"),
        )

        async with session_factory() as db:
            assert await Aggregator(db).os_versions() == [("5.1", 1), ("8.0", 1)]

    @pytest.mark.asyncio
    async def test_empty(self, session_factory):
        """Test statistics over an empty database."""
        async with session_factory() as db:
            assert await Aggregator(db).os_versions() == []

    @pytest.mark.asyncio
    async def test_count_by_any_column(self, session_factory, seed):
        """Test counting an arbitrary column."""
        await seed(_device("Device A", "6.0", "x"), _device("Device B", "6.0", "x"))

        async with session_factory() as db:
            counts = await Aggregator(db).count_by_value(Permission.name)
            assert counts == [("android.permission.INTERNET", 2)]
