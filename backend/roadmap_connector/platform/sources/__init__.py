"""Source connectors."""

from roadmap_connector.platform.sources.roadmap import RoadmapSource

__all__ = ["RoadmapSource"]
