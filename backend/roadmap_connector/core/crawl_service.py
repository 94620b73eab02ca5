"""Crawl orchestration: full and incremental crawls, retract and clear.

Only one run holds the run-state token at a time. An incremental crawl is
skipped (never queued) when another run holds it. A full crawl is skipped only
during another full crawl or a retract and otherwise preempts; retract and
clear preempt whatever is running (clear yields to a full crawl). A crawl
advances the watermark to the time it *started*, and only if it completed
without error and was not preempted.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, FrozenSet, Optional

from roadmap_connector.core.config import settings
from roadmap_connector.core.datetime_utils import utc_now
from roadmap_connector.core.logging import ContextualLogger
from roadmap_connector.core.logging import logger as default_logger
from roadmap_connector.platform.destinations._base import BaseDestination
from roadmap_connector.platform.destinations.graph_connector import GraphConnectorDestination
from roadmap_connector.platform.sources.roadmap import RoadmapSource
from roadmap_connector.platform.storage.watermark import (
    SqlWatermarkStore,
    WatermarkStore,
    get_watermark_store,
)


class RunState(str, Enum):
    """What currently holds the run-state token."""

    IDLE = "idle"
    FULL_CRAWL_RUNNING = "full_crawl_running"
    INCREMENTAL_CRAWL_RUNNING = "incremental_crawl_running"
    RETRACT_RUNNING = "retract_running"
    CLEAR_RUNNING = "clear_running"


class Operation(str, Enum):
    """Entry points of the crawl service."""

    FULL_CRAWL = "full_crawl"
    INCREMENTAL_CRAWL = "incremental_crawl"
    DEPLOY = "deploy"
    RETRACT = "retract"
    CLEAR = "clear"


class RunOutcome(str, Enum):
    """How a run ended."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    PREEMPTED = "preempted"


@dataclass
class RunResult:
    """Summary of one invocation, used for logging and API responses."""

    operation: Operation
    outcome: RunOutcome
    reason: Optional[str] = None
    started_at: Optional[datetime] = None
    since: Optional[datetime] = None
    fetched: int = 0
    ingested: int = 0
    skipped: int = 0
    watermark: Optional[datetime] = None

    def to_dict(self) -> dict:
        """JSON-friendly representation."""
        return {
            "operation": self.operation.value,
            "outcome": self.outcome.value,
            "reason": self.reason,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "since": self.since.isoformat() if self.since else None,
            "fetched": self.fetched,
            "ingested": self.ingested,
            "skipped": self.skipped,
            "watermark": self.watermark.isoformat() if self.watermark else None,
        }


@dataclass(eq=False)
class _RunToken:
    state: RunState
    acquired_at: datetime = field(default_factory=utc_now)


# An incremental crawl only starts when nothing else holds the token
_INCREMENTAL_CONFLICTS: FrozenSet[RunState] = frozenset(
    {
        RunState.FULL_CRAWL_RUNNING,
        RunState.INCREMENTAL_CRAWL_RUNNING,
        RunState.RETRACT_RUNNING,
        RunState.CLEAR_RUNNING,
    }
)
_FULL_CRAWL_CONFLICTS: FrozenSet[RunState] = frozenset(
    {RunState.FULL_CRAWL_RUNNING, RunState.RETRACT_RUNNING}
)
_CLEAR_CONFLICTS: FrozenSet[RunState] = frozenset({RunState.FULL_CRAWL_RUNNING})


class CrawlService:
    """Orchestrates crawls against one source, one destination and one watermark."""

    def __init__(
        self,
        source: RoadmapSource,
        destination: BaseDestination,
        store: WatermarkStore,
        clock: Callable[[], datetime] = utc_now,
        full_crawl_uses_watermark: bool = False,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the crawl service.

        Args:
            source: Roadmap source
            destination: Ingestion sink
            store: Watermark store
            clock: Returns the current UTC time; the run start is taken from it
            full_crawl_uses_watermark: Filter full crawls by the watermark too
                (local development, to avoid re-ingesting everything)
            logger: Contextual logger
        """
        self.source = source
        self.destination = destination
        self.store = store
        self.clock = clock
        self.full_crawl_uses_watermark = full_crawl_uses_watermark
        self.logger = logger or default_logger.with_context(component="crawl_service")
        self._lock = asyncio.Lock()
        self._token: Optional[_RunToken] = None

    @property
    def state(self) -> RunState:
        """Current run state."""
        return self._token.state if self._token else RunState.IDLE

    # -- run-state token ------------------------------------------------------

    async def _acquire(
        self, state: RunState, conflicts: FrozenSet[RunState]
    ) -> Optional[_RunToken]:
        """Take the token unless a conflicting run holds it."""
        async with self._lock:
            if self._token is not None and self._token.state in conflicts:
                return None
            if self._token is not None:
                self.logger.warning(f"{state.value} preempts {self._token.state.value}")
            self._token = _RunToken(state=state)
            return self._token

    def _release(self, token: _RunToken) -> None:
        if self._token is token:
            self._token = None

    def _owns(self, token: _RunToken) -> bool:
        return self._token is token

    def _skip(self, operation: Operation, reason: str) -> RunResult:
        self.logger.warning(f"Skipping {operation.value}: {reason}")
        return RunResult(operation=operation, outcome=RunOutcome.SKIPPED, reason=reason)

    # -- crawls -----------------------------------------------------------------

    async def full_crawl(self) -> RunResult:
        """Ingest every upstream record and advance the watermark.

        Preempts a running incremental crawl or clear.
        """
        return await self._run_crawl(
            Operation.FULL_CRAWL, RunState.FULL_CRAWL_RUNNING, _FULL_CRAWL_CONFLICTS
        )

    async def incremental_crawl(self) -> RunResult:
        """Ingest records modified since the watermark and advance it."""
        return await self._run_crawl(
            Operation.INCREMENTAL_CRAWL,
            RunState.INCREMENTAL_CRAWL_RUNNING,
            _INCREMENTAL_CONFLICTS,
        )

    async def _run_crawl(
        self, operation: Operation, state: RunState, conflicts: FrozenSet[RunState]
    ) -> RunResult:
        if not await self.destination.is_ready():
            return self._skip(operation, "connection not ready")

        token = await self._acquire(state, conflicts)
        if token is None:
            return self._skip(operation, f"{self.state.value} in progress")

        log = self.logger.with_context(operation=operation.value)
        try:
            return await self._crawl(operation, token, log)
        finally:
            self._release(token)

    async def _crawl(
        self, operation: Operation, token: _RunToken, log: ContextualLogger
    ) -> RunResult:
        started_at = self.clock()
        since: Optional[datetime] = None
        if operation == Operation.INCREMENTAL_CRAWL or self.full_crawl_uses_watermark:
            since = await self.store.read()
            if since is None:
                log.info("No watermark stored, crawling everything")

        result = RunResult(
            operation=operation, outcome=RunOutcome.COMPLETED, started_at=started_at, since=since
        )
        log.info(f"Starting {operation.value} (since={since.isoformat() if since else None})")

        try:
            async for item in self.source.generate_items(since):
                result.fetched += 1
                if not item.id:
                    # Items without an id would collide on the same index entry
                    result.skipped += 1
                    log.warning(f"Skipping roadmap item without id: {item.title!r}")
                    continue
                await self.destination.insert(item)
                result.ingested += 1
        except Exception as e:
            log.error(
                f"{operation.value} failed after {result.ingested} items, "
                f"watermark left unchanged: {e}"
            )
            raise

        if not self._owns(token):
            log.warning(f"{operation.value} was preempted, watermark left unchanged")
            result.outcome = RunOutcome.PREEMPTED
            return result

        result.watermark = await self.store.write(started_at)
        log.info(
            f"Finished {operation.value}: fetched={result.fetched} "
            f"ingested={result.ingested} skipped={result.skipped}"
        )
        return result

    async def deploy(self) -> RunResult:
        """Ensure the connection, schema and result template exist, then run a full crawl."""
        if not await self.destination.setup():
            return self._skip(Operation.DEPLOY, "connection could not be ensured")
        result = await self.full_crawl()
        if result.outcome == RunOutcome.SKIPPED:
            self.logger.info("Connection deployed; full crawl deferred to the next run")
        return result

    # -- maintenance --------------------------------------------------------------

    async def retract(self) -> RunResult:
        """Delete the connection and reset the watermark, preempting any run."""
        if not await self.destination.is_ready():
            return self._skip(Operation.RETRACT, "connection not ready")

        token = await self._acquire(RunState.RETRACT_RUNNING, frozenset())
        try:
            await self.destination.teardown()
            await self.store.reset()
        finally:
            self._release(token)
        self.logger.info("Connection retracted")
        return RunResult(operation=Operation.RETRACT, outcome=RunOutcome.COMPLETED)

    async def clear(self) -> RunResult:
        """Remove every indexed item and reset the watermark.

        Indexed items cannot be listed, so the ids to delete come from a full
        fetch of the upstream records.
        """
        if not await self.destination.is_ready():
            return self._skip(Operation.CLEAR, "connection not ready")

        token = await self._acquire(RunState.CLEAR_RUNNING, _CLEAR_CONFLICTS)
        if token is None:
            return self._skip(Operation.CLEAR, "full crawl in progress")

        result = RunResult(operation=Operation.CLEAR, outcome=RunOutcome.COMPLETED)
        try:
            for record in await self.source.fetch(None):
                if not self._owns(token):
                    break
                result.fetched += 1
                if record.id is None:
                    result.skipped += 1
                    continue
                await self.destination.delete(str(record.id))
            if not self._owns(token):
                # Preempted by a full crawl, whose watermark must stand
                self.logger.warning("clear was preempted, watermark left unchanged")
                result.outcome = RunOutcome.PREEMPTED
                return result
            await self.store.reset()
        finally:
            self._release(token)
        self.logger.info(f"Cleared {result.fetched - result.skipped} items")
        return result


_crawl_service: Optional[CrawlService] = None
_crawl_service_lock = asyncio.Lock()


async def get_crawl_service() -> CrawlService:
    """Process-wide crawl service built from settings.

    The run-state token lives on this instance, so every entry point in the
    process must share it. Construction awaits, so concurrent first callers
    are serialized on a lock.
    """
    global _crawl_service
    if _crawl_service is not None:
        return _crawl_service
    async with _crawl_service_lock:
        if _crawl_service is None:
            store = get_watermark_store()
            if isinstance(store, SqlWatermarkStore):
                await store.create_tables()
            _crawl_service = CrawlService(
                source=RoadmapSource.from_settings(),
                destination=await GraphConnectorDestination.create(),
                store=store,
                full_crawl_uses_watermark=settings.is_local,
            )
    return _crawl_service


async def close_crawl_service() -> None:
    """Release the HTTP client and database engine of the process-wide service."""
    global _crawl_service
    async with _crawl_service_lock:
        if _crawl_service is None:
            return
        service, _crawl_service = _crawl_service, None
    await service.destination.close()
    await service.store.close()
