"""Roadmap source: fetches roadmap records from the JSON API.

One GET per fetch, no pagination and no retry. A failed fetch fails the run;
the next scheduled run retries the same window.
"""

from datetime import datetime
from typing import Any, AsyncGenerator, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from roadmap_connector.core.config import settings
from roadmap_connector.core.datetime_utils import ensure_utc
from roadmap_connector.core.exceptions import MalformedResponse, UpstreamUnavailable
from roadmap_connector.core.logging import ContextualLogger
from roadmap_connector.core.logging import logger as default_logger
from roadmap_connector.platform.entities.roadmap import RoadmapItem, RoadmapRecord
from roadmap_connector.platform.transformers.roadmap import normalize


def filter_modified_since(
    records: Iterable[RoadmapRecord], since: Optional[datetime]
) -> List[RoadmapRecord]:
    """Keep records whose declared modification time is at or after ``since``.

    With no ``since`` every record is kept. Records without a modification
    timestamp cannot be placed in the window and are dropped.
    """
    if since is None:
        return list(records)
    since = ensure_utc(since)
    return [r for r in records if r.modified is not None and r.modified >= since]


class RoadmapSource:
    """Roadmap JSON API source."""

    def __init__(
        self,
        source_url: str,
        client: Optional[httpx.AsyncClient] = None,
        url_template: Optional[str] = None,
        timeout: Optional[float] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the source.

        Args:
            source_url: Roadmap API URL
            client: Optional shared HTTP client; a short-lived one is created per fetch otherwise
            url_template: Canonical item link template used by the normalizer
            timeout: Request timeout in seconds
            logger: Contextual logger
        """
        self.source_url = source_url
        self._client = client
        self.url_template = url_template or settings.ROADMAP_ITEM_URL_TEMPLATE
        self.timeout = timeout if timeout is not None else settings.SOURCE_TIMEOUT_SECONDS
        self.logger = logger or default_logger.with_context(component="roadmap_source")

    @classmethod
    def from_settings(
        cls, client: Optional[httpx.AsyncClient] = None, logger: Optional[ContextualLogger] = None
    ) -> "RoadmapSource":
        """Create a source configured from settings."""
        return cls(settings.SOURCE_API_URL, client=client, logger=logger)

    async def _get_payload(self) -> Any:
        """GET the source URL and decode the JSON body."""
        try:
            if self._client is not None:
                response = await self._client.get(self.source_url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.source_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                f"Roadmap API returned {e.response.status_code} for {self.source_url}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Roadmap API request failed: {e!r}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Roadmap API returned invalid JSON: {e}") from e

    def _parse_records(self, payload: Any) -> List[RoadmapRecord]:
        if not isinstance(payload, list):
            raise MalformedResponse(
                f"Roadmap API response is not a list (got {type(payload).__name__})"
            )
        records = []
        for index, entry in enumerate(payload):
            if not isinstance(entry, dict):
                raise MalformedResponse(f"Roadmap API entry {index} is not an object")
            try:
                records.append(RoadmapRecord.model_validate(entry))
            except ValidationError as e:
                raise MalformedResponse(f"Roadmap API entry {index} is invalid: {e}") from e
        return records

    async def fetch(self, since: Optional[datetime] = None) -> List[RoadmapRecord]:
        """Fetch roadmap records, optionally restricted to those modified since ``since``.

        Args:
            since: Watermark; None fetches everything (full crawl)

        Returns:
            Records in upstream order

        Raises:
            UpstreamUnavailable: Network error or non-success status
            MalformedResponse: Payload is not a list of records
        """
        self.logger.info(f"Fetching roadmap data from: {self.source_url}")
        try:
            records = self._parse_records(await self._get_payload())
        except (UpstreamUnavailable, MalformedResponse) as e:
            self.logger.error(f"Error fetching roadmap data: {e}")
            raise

        self.logger.info(f"Found {len(records)} items in roadmap API response")
        filtered = filter_modified_since(records, since)
        if since is not None:
            self.logger.info(
                f"{len(filtered)} of {len(records)} items modified since {since.isoformat()}"
            )
        return filtered

    async def generate_items(
        self, since: Optional[datetime] = None
    ) -> AsyncGenerator[RoadmapItem, None]:
        """Yield normalized items one at a time.

        The upstream list is fetched once; normalization happens lazily so a
        consumer that stops early never normalizes the remainder.
        """
        for record in await self.fetch(since):
            yield normalize(record, self.url_template)
