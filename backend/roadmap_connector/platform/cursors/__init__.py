"""Cursor schemas for incremental sync tracking."""

from roadmap_connector.platform.cursors._base import BaseCursor
from roadmap_connector.platform.cursors.roadmap import RoadmapCursor

__all__ = ["BaseCursor", "RoadmapCursor"]
