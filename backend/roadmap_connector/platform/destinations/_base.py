"""Base destination class."""

from abc import ABC, abstractmethod
from typing import Optional

from roadmap_connector.core.logging import ContextualLogger
from roadmap_connector.core.logging import logger as default_logger
from roadmap_connector.platform.entities.roadmap import RoadmapItem


class BaseDestination(ABC):
    """Common base destination class. An ingestion sink for normalized items."""

    def __init__(self):
        """Initialize the base destination."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this destination, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this destination."""
        self._logger = logger

    @abstractmethod
    async def is_ready(self) -> bool:
        """Whether the destination can accept items."""
        pass

    @abstractmethod
    async def setup(self) -> bool:
        """Create whatever the destination needs before ingestion.

        Returns:
            True if the destination exists afterwards
        """
        pass

    @abstractmethod
    async def insert(self, item: RoadmapItem) -> None:
        """Insert or replace a single item."""
        pass

    @abstractmethod
    async def delete(self, item_id: str) -> None:
        """Delete a single item. Deleting a missing item is not an error."""
        pass

    @abstractmethod
    async def teardown(self) -> None:
        """Remove the destination and everything indexed in it."""
        pass

    async def close(self) -> None:
        """Release resources held by the destination."""
        pass
