"""Crawl workflows started by the schedules."""

from datetime import timedelta
from typing import Any, Dict

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from roadmap_connector.platform.temporal.activities import (
        deploy_connection_activity,
        full_crawl_activity,
        incremental_crawl_activity,
    )

# Failed crawls are retried by the next scheduled run, not by Temporal
_NO_RETRY = RetryPolicy(maximum_attempts=1)


@workflow.defn
class FullCrawlWorkflow:
    """Daily full crawl."""

    @workflow.run
    async def run(self) -> Dict[str, Any]:
        """Run the full crawl activity."""
        return await workflow.execute_activity(
            full_crawl_activity,
            start_to_close_timeout=timedelta(hours=6),
            retry_policy=_NO_RETRY,
        )


@workflow.defn
class IncrementalCrawlWorkflow:
    """Incremental crawl every 15 minutes."""

    @workflow.run
    async def run(self) -> Dict[str, Any]:
        """Run the incremental crawl activity."""
        return await workflow.execute_activity(
            incremental_crawl_activity,
            start_to_close_timeout=timedelta(hours=1),
            retry_policy=_NO_RETRY,
        )


@workflow.defn
class DeployConnectionWorkflow:
    """Ensure connection, schema and result template; then full crawl."""

    @workflow.run
    async def run(self) -> Dict[str, Any]:
        """Run the deploy activity."""
        return await workflow.execute_activity(
            deploy_connection_activity,
            start_to_close_timeout=timedelta(hours=8),
            retry_policy=_NO_RETRY,
        )
