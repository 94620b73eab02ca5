"""Tests for the watermark stores.

The file store runs against a pytest tmp_path; the SQL store against a
SQLite database file through aiosqlite.
"""

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from roadmap_connector.core.datetime_utils import EPOCH
from roadmap_connector.core.exceptions import StoreUnavailable
from roadmap_connector.platform.storage.watermark import (
    FileWatermarkStore,
    SqlWatermarkStore,
    get_watermark_store,
)

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def file_store(tmp_path):
    """Create a file store under a temporary directory."""
    return FileWatermarkStore("RoadmapTest", tmp_path / "watermarks")


@pytest_asyncio.fixture(params=["file", "sql"])
async def store(request, tmp_path):
    """Create a store for each backend; the SQL one on a fresh SQLite database."""
    if request.param == "file":
        yield FileWatermarkStore("RoadmapTest", tmp_path / "watermarks")
        return

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'watermark.db'}")
    store = SqlWatermarkStore("RoadmapTest", engine)
    await store.create_tables()
    yield store
    await engine.dispose()


@pytest.mark.asyncio
async def test_read_absent_watermark_returns_none(store):
    """Test that a connector that never synced has no watermark."""
    assert await store.read() is None


@pytest.mark.asyncio
async def test_write_then_read(store):
    """Test that a written watermark is read back."""
    effective = await store.write(T0)

    assert effective == T0
    assert await store.read() == T0


@pytest.mark.asyncio
async def test_write_is_forward_only(store):
    """Test that an older timestamp does not move the watermark back."""
    await store.write(T0)

    effective = await store.write(T0 - timedelta(hours=1))

    assert effective == T0
    assert await store.read() == T0


@pytest.mark.asyncio
async def test_write_advances(store):
    """Test that a newer timestamp replaces the stored one."""
    await store.write(T0)
    later = T0 + timedelta(minutes=15)

    await store.write(later)

    assert await store.read() == later


@pytest.mark.asyncio
async def test_reset_sets_epoch(store):
    """Test that reset moves the watermark back to the epoch."""
    await store.write(T0)

    await store.reset()

    assert await store.read() == EPOCH


@pytest.mark.asyncio
async def test_write_after_reset_is_accepted(store):
    """Test that a crawl after a reset can advance the watermark again."""
    await store.write(T0)
    await store.reset()

    await store.write(T0 - timedelta(days=1))

    assert await store.read() == T0 - timedelta(days=1)


@pytest.mark.asyncio
async def test_naive_timestamp_stored_as_utc(store):
    """Test that naive timestamps are treated as UTC."""
    await store.write(datetime(2024, 3, 1, 12, 0))

    assert await store.read() == T0


@pytest.mark.asyncio
async def test_file_store_survives_new_instance(tmp_path):
    """Test that the watermark outlives the store instance (process restart)."""
    await FileWatermarkStore("RoadmapTest", tmp_path).write(T0)

    assert await FileWatermarkStore("RoadmapTest", tmp_path).read() == T0
    assert await FileWatermarkStore("OtherConnector", tmp_path).read() is None


@pytest.mark.asyncio
async def test_file_store_leaves_no_temp_file(file_store):
    """Test that the atomic write cleans up after itself."""
    await file_store.write(T0)

    assert sorted(p.name for p in file_store.base_path.iterdir()) == [
        "watermark_RoadmapTest.json"
    ]


@pytest.mark.asyncio
async def test_file_store_flushes_file_and_directory(file_store):
    """Test that both the new file and the rename are flushed to disk."""
    with patch("roadmap_connector.platform.storage.watermark.os.fsync", wraps=os.fsync) as fsync:
        await file_store.write(T0)

    assert fsync.call_count == 2
    assert await file_store.read() == T0


@pytest.mark.asyncio
async def test_file_store_corrupt_file_raises(file_store):
    """Test that an unreadable document raises StoreUnavailable."""
    file_store.base_path.mkdir(parents=True)
    file_store.path.write_text("{not json")

    with pytest.raises(StoreUnavailable):
        await file_store.read()


@pytest.mark.asyncio
async def test_file_store_unwritable_path_raises(tmp_path):
    """Test that a base path that is a file raises StoreUnavailable."""
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = FileWatermarkStore("RoadmapTest", blocker)

    with pytest.raises(StoreUnavailable):
        await store.write(T0)


@pytest.mark.asyncio
async def test_sql_store_unreachable_database_raises(tmp_path):
    """Test that a database that cannot be opened raises StoreUnavailable."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'watermark.db'}"
    )
    store = SqlWatermarkStore("RoadmapTest", engine)

    with pytest.raises(StoreUnavailable):
        await store.read()

    await engine.dispose()


def test_get_watermark_store_defaults_to_file():
    """Test that the factory picks the file backend from settings."""
    store = get_watermark_store("RoadmapTest")

    assert isinstance(store, FileWatermarkStore)
    assert store.connector_id == "RoadmapTest"
