"""Temporal schedules for the crawl timers.

Three schedules per connector:
- deploy-<id>: daily, ensures the connection then runs a full crawl
- full-crawl-<id>: daily full crawl
- incremental-crawl-<id>: every 15 minutes

Overlapping triggers are skipped, never buffered.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
    ScheduleUpdate,
    ScheduleUpdateInput,
)

from roadmap_connector.core.config import settings
from roadmap_connector.core.logging import logger
from roadmap_connector.platform.temporal.client import temporal_client
from roadmap_connector.platform.temporal.workflows import (
    DeployConnectionWorkflow,
    FullCrawlWorkflow,
    IncrementalCrawlWorkflow,
)


@dataclass(frozen=True)
class CrawlScheduleDefinition:
    """One timer: a workflow started on a cron expression."""

    schedule_id: str
    workflow_run: Any
    cron: str


def get_schedule_definitions(connector_id: Optional[str] = None) -> List[CrawlScheduleDefinition]:
    """Schedules for a connector, built from settings."""
    connector_id = connector_id or settings.CONNECTOR_ID
    return [
        CrawlScheduleDefinition(
            f"deploy-{connector_id}", DeployConnectionWorkflow.run, settings.DEPLOY_CRON
        ),
        CrawlScheduleDefinition(
            f"full-crawl-{connector_id}", FullCrawlWorkflow.run, settings.FULL_CRAWL_CRON
        ),
        CrawlScheduleDefinition(
            f"incremental-crawl-{connector_id}",
            IncrementalCrawlWorkflow.run,
            settings.INCREMENTAL_CRAWL_CRON,
        ),
    ]


def build_schedule(definition: CrawlScheduleDefinition, task_queue: str) -> Schedule:
    """Build the Temporal schedule for a definition."""
    return Schedule(
        action=ScheduleActionStartWorkflow(
            definition.workflow_run,
            id=f"{definition.schedule_id}-run",
            task_queue=task_queue,
        ),
        spec=ScheduleSpec(cron_expressions=[definition.cron]),
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
    )


class TemporalScheduleService:
    """Creates, updates and deletes the crawl schedules."""

    def __init__(self, client: Optional[Client] = None):
        """Initialize the service.

        Args:
            client: Temporal client; the shared one is used when omitted
        """
        self._client = client

    async def _get_client(self) -> Client:
        if self._client is None:
            self._client = await temporal_client.get_client()
        return self._client

    async def upsert_schedule(self, definition: CrawlScheduleDefinition) -> None:
        """Create the schedule, or replace its spec if it already exists."""
        client = await self._get_client()
        schedule = build_schedule(definition, settings.TEMPORAL_TASK_QUEUE)
        try:
            await client.create_schedule(definition.schedule_id, schedule)
            logger.info(f"Created schedule {definition.schedule_id} ({definition.cron})")
        except ScheduleAlreadyRunningError:
            handle = client.get_schedule_handle(definition.schedule_id)

            def _replace(_: ScheduleUpdateInput) -> ScheduleUpdate:
                return ScheduleUpdate(schedule=schedule)

            await handle.update(_replace)
            logger.info(f"Updated schedule {definition.schedule_id} ({definition.cron})")

    async def upsert_all(self) -> None:
        """Create or update every crawl schedule for the configured connector."""
        for definition in get_schedule_definitions():
            await self.upsert_schedule(definition)


temporal_schedule_service = TemporalScheduleService()
