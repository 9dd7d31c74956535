"""Shared fixtures: an in-memory database per test and an API client bound to it."""

import json
import os
import zlib

# Must be set before census.database builds its engine
os.environ.setdefault("DATABASE_DSN", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from census.config import Settings, get_settings
from census.database import get_db, get_session_factory, init_models
from census.main import app
from census.services.blob_store import BlobStore


def make_submission(**overrides) -> dict:
    """Build a census document with sensible defaults, overridable by kwargs."""
    document = {
        "device_name": "asus Nexus 7",
        "system_properties": {
            "ro.build.description": "razor-user 6.0.1 MOB30X 3036618 release-keys",
            "ro.build.version.release": "6.0.1",
            "ro.product.manufacturer": "asus",
        },
        "sysctl": {"kernel.randomize_va_space": "2"},
        "environment_variables": {"PATH": "/sbin:/system/bin"},
        "features": ["android.hardware.wifi", "android.hardware.camera"],
        "system_shared_libraries": ["android.test.runner"],
        "permissions": [
            {
                "name": "android.permission.INTERNET",
                "packageName": "android",
                "protectionLevel": 0,
                "flags": 0,
            }
        ],
        "file_permissions": [
            {
                "path": "/system/bin/sh",
                "mode": 33261,
                "size": 1024,
                "uid": 0,
                "gid": 2000,
                "selinuxContext": "u:object_r:shell_exec:s0",
            }
        ],
        "providers": [
            {
                "authority": "settings",
                "initOrder": 100,
                "multiprocess": False,
                "grantUriPermissions": False,
                "readPermission": None,
                "writePermission": "android.permission.WRITE_SETTINGS",
            }
        ],
        "small_files": {"/proc/version": "TGludXggdmVyc2lvbiAzLjQuMA=="},
    }
    document.update(overrides)
    return document


def compressed(document: dict) -> bytes:
    """Serialize and deflate a document the way census clients upload it."""
    return zlib.compress(json.dumps(document).encode("utf-8"))


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
def store_result(session_factory):
    """Store a payload (raw bytes or a document to compress) and return its id."""

    async def _store(payload) -> int:
        if isinstance(payload, dict):
            payload = compressed(payload)
        async with session_factory() as db:
            result_id = await BlobStore(db).submit(payload)
            await db.commit()
        return result_id

    return _store


@pytest.fixture
def settings() -> Settings:
    return Settings(database_dsn="sqlite+aiosqlite://")


@pytest_asyncio.fixture
async def client(session_factory, settings):
    """API client whose requests and background tasks use the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
