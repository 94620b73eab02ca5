"""Graph external connection destination.

Manages the lifecycle of one external connection (create, schema, search
settings, delete) and pushes items into it.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt

from roadmap_connector.core.config import settings
from roadmap_connector.core.exceptions import IngestionError
from roadmap_connector.core.logging import ContextualLogger
from roadmap_connector.platform.destinations._base import BaseDestination
from roadmap_connector.platform.destinations.external_item import (
    AclProvider,
    get_external_item_from_item,
)
from roadmap_connector.platform.destinations.retry_helpers import (
    retry_if_graph_call_failed,
    wait_retry_after_with_backoff,
)
from roadmap_connector.platform.destinations.schema import (
    CONNECTION_SCHEMA,
    build_search_settings,
)
from roadmap_connector.platform.entities.roadmap import RoadmapItem

READY_STATE = "ready"


class GraphConnectorDestination(BaseDestination):
    """Graph external connection used as the ingestion sink.

    The access token is supplied by configuration; acquiring it is the
    deployment's concern.
    """

    def __init__(
        self,
        connection_id: str,
        name: str,
        description: str,
        access_token: Optional[str],
        base_url: str = "https://graph.microsoft.com/v1.0",
        client: Optional[httpx.AsyncClient] = None,
        acl_provider: Optional[AclProvider] = None,
        schema_poll_interval: float = 60.0,
        schema_poll_attempts: int = 30,
    ):
        """Initialize the destination.

        Args:
            connection_id: External connection ID
            name: Connection display name
            description: Connection description
            access_token: Bearer token for Graph
            base_url: Graph API base URL
            client: Optional HTTP client (tests inject one with a mock transport)
            acl_provider: Derives an item's ACL; defaults to grant-everyone
            schema_poll_interval: Seconds between schema provisioning status checks
            schema_poll_attempts: Status checks before giving up on schema provisioning
        """
        super().__init__()
        self.connection_id = connection_id
        self.name = name
        self.description = description
        self.base_url = base_url.rstrip("/")
        self.acl_provider = acl_provider
        self.schema_poll_interval = schema_poll_interval
        self.schema_poll_attempts = schema_poll_attempts
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._client = client or httpx.AsyncClient(timeout=60.0)
        self._headers = headers

    @classmethod
    async def create(
        cls,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[ContextualLogger] = None,
    ) -> "GraphConnectorDestination":
        """Create a destination configured from settings."""
        instance = cls(
            connection_id=settings.CONNECTOR_ID,
            name=settings.CONNECTOR_NAME,
            description=settings.CONNECTOR_DESCRIPTION,
            access_token=settings.GRAPH_ACCESS_TOKEN,
            base_url=settings.GRAPH_API_URL,
            client=client,
        )
        if logger:
            instance.set_logger(logger)
        return instance

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    @property
    def _connection_url(self) -> str:
        return f"{self.base_url}/external/connections/{self.connection_id}"

    @retry(
        stop=stop_after_attempt(settings.GRAPH_MAX_RETRIES),
        retry=retry_if_graph_call_failed,
        wait=wait_retry_after_with_backoff,
        reraise=True,
    )
    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, raising for error statuses so tenacity can retry them."""
        response = await self._client.request(method, url, headers=self._headers, **kwargs)
        if response.status_code == 429:
            self.logger.warning(f"Graph throttled {method} {url}, retrying...")
        response.raise_for_status()
        return response

    async def _request(
        self, method: str, url: str, allow_not_found: bool = False, **kwargs
    ) -> Optional[httpx.Response]:
        """Send a request and translate failures into IngestionError.

        Args:
            method: HTTP method
            url: Absolute URL
            allow_not_found: Return None instead of raising on 404
            **kwargs: Passed to httpx

        Returns:
            The response, or None for an allowed 404
        """
        try:
            return await self._send(method, url, **kwargs)
        except httpx.HTTPStatusError as e:
            if allow_not_found and e.response.status_code == 404:
                return None
            self.logger.error(
                f"Graph API error {e.response.status_code} for {method} {url}: {e.response.text}"
            )
            raise IngestionError(
                f"Graph {method} {url} failed with {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            self.logger.error(f"Graph API request failed for {method} {url}: {e!r}")
            raise IngestionError(f"Graph {method} {url} failed: {e!r}") from e

    # -- connection lifecycle -------------------------------------------------

    async def get_connection(self) -> Optional[Dict[str, Any]]:
        """Fetch the external connection, or None if it does not exist."""
        response = await self._request("GET", self._connection_url, allow_not_found=True)
        return response.json() if response is not None else None

    async def is_ready(self) -> bool:
        """Whether the connection exists and its state is ``ready``."""
        connection = await self.get_connection()
        if connection is None:
            return False
        return connection.get("state") == READY_STATE

    async def ensure_connection(self) -> bool:
        """Create the external connection unless it already exists.

        Returns:
            True once the connection exists
        """
        if await self.get_connection() is not None:
            self.logger.info(f"Connection {self.connection_id} already exists")
            return True

        self.logger.info(f"Creating connection {self.connection_id}...")
        await self._request(
            "POST",
            f"{self.base_url}/external/connections",
            json={
                "id": self.connection_id,
                "name": self.name,
                "description": self.description,
            },
        )
        self.logger.info(f"Connection {self.connection_id} created")
        return True

    async def ensure_schema(self, schema: Optional[Dict[str, Any]] = None) -> None:
        """Register the schema and wait until Graph finishes provisioning it.

        Raises:
            IngestionError: Provisioning failed or did not finish in time
        """
        self.logger.info("Registering schema...")
        response = await self._request(
            "PATCH", f"{self._connection_url}/schema", json=schema or CONNECTION_SCHEMA
        )
        operation_url = response.headers.get("Location") if response is not None else None
        if not operation_url:
            self.logger.info("Schema registered")
            return

        for _ in range(self.schema_poll_attempts):
            operation = await self._request("GET", operation_url)
            status = operation.json().get("status")
            if status == "completed":
                self.logger.info("Schema provisioned")
                return
            if status == "failed":
                raise IngestionError(f"Schema provisioning failed: {operation.json()}")
            self.logger.debug(f"Schema provisioning status: {status}")
            await asyncio.sleep(self.schema_poll_interval)

        raise IngestionError("Schema provisioning did not complete in time")

    async def set_search_settings(self) -> None:
        """Register the search result template for the connection."""
        await self._request(
            "PATCH", self._connection_url, json=build_search_settings(self.connection_id)
        )
        self.logger.info("Search settings updated")

    async def setup(self) -> bool:
        """Ensure the connection, its schema and the result template are in place."""
        created = await self.ensure_connection()
        if created:
            await self.ensure_schema()
            await self.set_search_settings()
        return created

    async def teardown(self) -> None:
        """Delete the external connection and all of its items."""
        self.logger.info(f"Deleting connection {self.connection_id}...")
        await self._request("DELETE", self._connection_url, allow_not_found=True)
        self.logger.info(f"Connection {self.connection_id} deleted")

    # -- items ------------------------------------------------------------------

    async def insert(self, item: RoadmapItem) -> None:
        """Upsert one item into the connection."""
        body = get_external_item_from_item(item, self.acl_provider)
        await self._request("PUT", f"{self._connection_url}/items/{item.id}", json=body)

    async def delete(self, item_id: str) -> None:
        """Delete one item from the connection; a missing item is ignored."""
        await self._request(
            "DELETE", f"{self._connection_url}/items/{item_id}", allow_not_found=True
        )
