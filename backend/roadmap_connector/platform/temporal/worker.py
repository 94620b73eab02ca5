"""Temporal worker for the roadmap connector.

Hosts the crawl workflows and activities, upserts the crawl schedules on
start, and serves the maintenance API from the same process so that crawls
and maintenance operations share one run-state token.
"""

import asyncio
import signal
from datetime import timedelta
from typing import Any, Optional

import uvicorn
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.worker import Worker

from roadmap_connector.core.config import settings
from roadmap_connector.core.crawl_service import close_crawl_service
from roadmap_connector.core.logging import logger
from roadmap_connector.platform.temporal.client import temporal_client
from roadmap_connector.platform.temporal.schedule_service import temporal_schedule_service


class TemporalWorker:
    """Temporal worker for processing crawl workflows and activities."""

    def __init__(self) -> None:
        """Initialize the Temporal worker."""
        self.worker: Worker | None = None
        self.running = False
        self.api_server: Optional[uvicorn.Server] = None
        self._api_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start the Temporal worker."""
        try:
            if settings.MAINTENANCE_API_ENABLED:
                await self._start_api_server()

            client = await temporal_client.get_client()
            task_queue = settings.TEMPORAL_TASK_QUEUE
            logger.info(f"Starting Temporal worker on task queue: {task_queue}")

            from roadmap_connector.platform.temporal.activities import (
                deploy_connection_activity,
                full_crawl_activity,
                incremental_crawl_activity,
            )
            from roadmap_connector.platform.temporal.workflows import (
                DeployConnectionWorkflow,
                FullCrawlWorkflow,
                IncrementalCrawlWorkflow,
            )

            self.worker = Worker(
                client,
                task_queue=task_queue,
                workflows=[
                    DeployConnectionWorkflow,
                    FullCrawlWorkflow,
                    IncrementalCrawlWorkflow,
                ],
                activities=[
                    deploy_connection_activity,
                    full_crawl_activity,
                    incremental_crawl_activity,
                ],
                workflow_runner=self._get_sandbox_config(),
                graceful_shutdown_timeout=timedelta(
                    seconds=settings.TEMPORAL_GRACEFUL_SHUTDOWN_TIMEOUT
                ),
            )

            await temporal_schedule_service.upsert_all()
            if settings.is_local:
                # Local runs deploy immediately instead of waiting for the daily timer
                try:
                    await client.start_workflow(
                        DeployConnectionWorkflow.run,
                        id=f"deploy-{settings.CONNECTOR_ID}-startup",
                        task_queue=task_queue,
                    )
                except WorkflowAlreadyStartedError:
                    logger.info("Startup deploy already running")

            self.running = True
            logger.info("Worker started")
            await self.worker.run()

        except Exception as e:
            logger.error(f"Error starting Temporal worker: {e}")
            raise

    async def stop(self) -> None:
        """Stop the Temporal worker."""
        if self.worker and self.running:
            logger.info("Stopping worker gracefully")
            self.running = False
            await self.worker.shutdown()

        if self.api_server is not None:
            self.api_server.should_exit = True
            if self._api_task is not None:
                await self._api_task

        await close_crawl_service()
        await temporal_client.close()

    async def _start_api_server(self) -> None:
        """Serve the maintenance API in the background."""
        from roadmap_connector.api.main import app

        config = uvicorn.Config(
            app,
            host="0.0.0.0",
            port=settings.API_PORT,
            log_level=settings.LOG_LEVEL.lower(),
        )
        self.api_server = uvicorn.Server(config)
        self._api_task = asyncio.create_task(self.api_server.serve())
        logger.info(f"Maintenance API started on 0.0.0.0:{settings.API_PORT}")

    def _get_sandbox_config(self):
        """Determine the appropriate sandbox configuration."""
        if settings.TEMPORAL_DISABLE_SANDBOX:
            from temporalio.worker import UnsandboxedWorkflowRunner

            logger.warning("TEMPORAL SANDBOX DISABLED - Use only for debugging!")
            return UnsandboxedWorkflowRunner()

        from temporalio.worker.workflow_sandbox import SandboxedWorkflowRunner

        return SandboxedWorkflowRunner()


async def main() -> None:
    """Main function to run the worker."""
    worker = TemporalWorker()

    def signal_handler(signum: int, frame: Any) -> None:
        logger.info(f"Received signal {signum}, shutting down...")
        asyncio.create_task(worker.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        await worker.start()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    finally:
        await worker.stop()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
