"""Temporal activities for the roadmap connector."""

from roadmap_connector.platform.temporal.activities.crawl import (
    deploy_connection_activity,
    full_crawl_activity,
    incremental_crawl_activity,
)

__all__ = [
    "deploy_connection_activity",
    "full_crawl_activity",
    "incremental_crawl_activity",
]
