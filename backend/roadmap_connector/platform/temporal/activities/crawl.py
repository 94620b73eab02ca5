"""Crawl activities.

Each activity delegates to the process-wide CrawlService and returns the
run summary as a dict. Connector errors propagate and fail the workflow;
the next scheduled run retries the same window.
"""

from typing import Any, Dict

from temporalio import activity

from roadmap_connector.core.crawl_service import get_crawl_service


@activity.defn
async def full_crawl_activity() -> Dict[str, Any]:
    """Run a full crawl."""
    service = await get_crawl_service()
    result = await service.full_crawl()
    return result.to_dict()


@activity.defn
async def incremental_crawl_activity() -> Dict[str, Any]:
    """Run an incremental crawl."""
    service = await get_crawl_service()
    result = await service.incremental_crawl()
    return result.to_dict()


@activity.defn
async def deploy_connection_activity() -> Dict[str, Any]:
    """Ensure the connection exists, then run a full crawl."""
    service = await get_crawl_service()
    result = await service.deploy()
    return result.to_dict()
