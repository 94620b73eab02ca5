"""Temporal workflows for the roadmap connector."""

from roadmap_connector.platform.temporal.workflows.crawl import (
    DeployConnectionWorkflow,
    FullCrawlWorkflow,
    IncrementalCrawlWorkflow,
)

__all__ = [
    "DeployConnectionWorkflow",
    "FullCrawlWorkflow",
    "IncrementalCrawlWorkflow",
]
