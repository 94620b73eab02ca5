"""Dependencies that are used in the API endpoints."""

from roadmap_connector.core.crawl_service import CrawlService, get_crawl_service


async def get_service() -> CrawlService:
    """Process-wide crawl service."""
    return await get_crawl_service()
