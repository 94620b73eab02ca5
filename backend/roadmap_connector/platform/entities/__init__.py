"""Entity schemas for roadmap records and normalized items."""

from roadmap_connector.platform.entities.roadmap import (
    RoadmapItem,
    RoadmapRecord,
    RoadmapTag,
    RoadmapTagsContainer,
)

__all__ = ["RoadmapItem", "RoadmapRecord", "RoadmapTag", "RoadmapTagsContainer"]
