"""Watermark persistence.

A watermark is the start time of the last successful crawl for one connector.
Absent means the connector never synced and a full crawl is required.

Backends:
- FileWatermarkStore: one JSON document per connector on the local filesystem
- SqlWatermarkStore: one row per connector in ``connector_watermark``

``write`` is durable before it returns and forward-only; ``reset`` is the only
way to move the watermark back (to the epoch).
"""

import asyncio
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import aiofiles
import aiofiles.os
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from roadmap_connector.core.config import settings
from roadmap_connector.core.datetime_utils import EPOCH, ensure_utc, utc_now
from roadmap_connector.core.exceptions import StoreUnavailable
from roadmap_connector.core.logging import ContextualLogger
from roadmap_connector.core.logging import logger as default_logger
from roadmap_connector.models import Base, ConnectorWatermark
from roadmap_connector.platform.cursors.roadmap import RoadmapCursor


class WatermarkStore(ABC):
    """Persists the last crawl timestamp of a single connector."""

    def __init__(self, connector_id: str, logger: Optional[ContextualLogger] = None):
        """Initialize the store.

        Args:
            connector_id: Connector instance the watermark is keyed by
            logger: Contextual logger
        """
        self.connector_id = connector_id
        self.logger = logger or default_logger.with_context(
            component="watermark_store", connector_id=connector_id
        )

    @abstractmethod
    async def _load(self) -> Optional[RoadmapCursor]:
        """Load the stored cursor, or None if nothing was stored yet."""

    @abstractmethod
    async def _save(self, cursor: RoadmapCursor) -> None:
        """Persist the cursor durably."""

    async def read(self) -> Optional[datetime]:
        """Return the watermark, or None if the connector never synced.

        Raises:
            StoreUnavailable: The persistence medium cannot be reached
        """
        cursor = await self._load()
        return cursor.last_crawl_at if cursor else None

    async def write(self, timestamp: datetime) -> datetime:
        """Advance the watermark to ``timestamp``.

        A timestamp older than the stored one is ignored so the watermark
        never regresses.

        Returns:
            The watermark in effect after the call
        """
        timestamp = ensure_utc(timestamp)
        current = await self.read()
        if current is not None and timestamp < current:
            self.logger.warning(
                f"Ignoring watermark {timestamp.isoformat()} older than "
                f"stored {current.isoformat()}"
            )
            return current
        await self._save(RoadmapCursor(connector_id=self.connector_id, last_crawl_at=timestamp))
        self.logger.debug(f"Watermark advanced to {timestamp.isoformat()}")
        return timestamp

    async def reset(self) -> None:
        """Set the watermark to the epoch so the next run crawls everything."""
        await self._save(RoadmapCursor(connector_id=self.connector_id, last_crawl_at=EPOCH))
        self.logger.info("Watermark reset to epoch")

    async def close(self) -> None:
        """Release resources held by the store."""


def _fsync_directory(path: Path) -> None:
    """Flush a directory entry so a rename inside it survives a crash."""
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class FileWatermarkStore(WatermarkStore):
    """Watermark stored as a JSON file under a base directory."""

    def __init__(
        self,
        connector_id: str,
        base_path: Union[str, Path],
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the file store.

        Args:
            connector_id: Connector instance the watermark is keyed by
            base_path: Directory holding the watermark files
            logger: Contextual logger
        """
        super().__init__(connector_id, logger)
        self.base_path = Path(base_path)
        self.path = self.base_path / f"watermark_{connector_id}.json"

    async def _load(self) -> Optional[RoadmapCursor]:
        try:
            if not await aiofiles.os.path.exists(self.path):
                return None
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except OSError as e:
            raise StoreUnavailable(f"Failed to read watermark from {self.path}: {e}") from e

        try:
            return RoadmapCursor.model_validate_json(raw)
        except ValidationError as e:
            raise StoreUnavailable(f"Corrupt watermark file {self.path}: {e}") from e

    async def _save(self, cursor: RoadmapCursor) -> None:
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            await aiofiles.os.makedirs(self.base_path, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(cursor.model_dump_json())
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(tmp_path, self.path)
            await asyncio.to_thread(_fsync_directory, self.base_path)
        except OSError as e:
            raise StoreUnavailable(f"Failed to write watermark to {self.path}: {e}") from e


class SqlWatermarkStore(WatermarkStore):
    """Watermark stored in the ``connector_watermark`` table."""

    def __init__(
        self,
        connector_id: str,
        engine: AsyncEngine,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the SQL store.

        Args:
            connector_id: Connector instance the watermark is keyed by
            engine: Async SQLAlchemy engine
            logger: Contextual logger
        """
        super().__init__(connector_id, logger)
        self.engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async def create_tables(self) -> None:
        """Create the watermark table if it does not exist."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Failed to create watermark table: {e}") from e

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self.engine.dispose()

    async def _load(self) -> Optional[RoadmapCursor]:
        try:
            async with self._session_factory() as session:
                row = await session.get(ConnectorWatermark, self.connector_id)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Failed to read watermark: {e}") from e
        if row is None:
            return None
        return RoadmapCursor(connector_id=row.connector_id, last_crawl_at=row.last_crawl_at)

    async def _save(self, cursor: RoadmapCursor) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(ConnectorWatermark, self.connector_id)
                    if row is None:
                        session.add(
                            ConnectorWatermark(
                                connector_id=self.connector_id,
                                last_crawl_at=cursor.last_crawl_at,
                                modified_at=utc_now(),
                            )
                        )
                    else:
                        row.last_crawl_at = cursor.last_crawl_at
                        row.modified_at = utc_now()
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(f"Failed to write watermark: {e}") from e


def get_watermark_store(
    connector_id: Optional[str] = None, logger: Optional[ContextualLogger] = None
) -> WatermarkStore:
    """Create the watermark store selected by ``WATERMARK_BACKEND``."""
    connector_id = connector_id or settings.CONNECTOR_ID
    if settings.WATERMARK_BACKEND == "sql":
        engine = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
        return SqlWatermarkStore(connector_id, engine, logger=logger)
    return FileWatermarkStore(connector_id, settings.STORAGE_PATH, logger=logger)
