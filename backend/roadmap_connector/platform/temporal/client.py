"""Temporal client singleton."""

from typing import Optional

from temporalio.client import Client

from roadmap_connector.core.config import settings
from roadmap_connector.core.logging import logger


class TemporalClient:
    """Lazily connected Temporal client."""

    def __init__(self) -> None:
        """Initialize without connecting."""
        self._client: Optional[Client] = None

    async def get_client(self) -> Client:
        """Connect on first use and return the client."""
        if self._client is None:
            logger.info(
                f"Connecting to Temporal at {settings.TEMPORAL_HOST} "
                f"(namespace={settings.TEMPORAL_NAMESPACE})"
            )
            self._client = await Client.connect(
                settings.TEMPORAL_HOST, namespace=settings.TEMPORAL_NAMESPACE
            )
        return self._client

    async def close(self) -> None:
        """Drop the client; the underlying connection closes with it."""
        self._client = None


temporal_client = TemporalClient()
