"""Roadmap cursor schema for incremental sync."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from roadmap_connector.core.datetime_utils import ensure_utc

from ._base import BaseCursor


class RoadmapCursor(BaseCursor):
    """Roadmap incremental sync cursor.

    ``last_crawl_at`` is the start time of the last successful crawl. The next
    incremental crawl fetches records modified at or after it.
    """

    connector_id: str = Field(..., description="Connection the watermark belongs to")
    last_crawl_at: Optional[datetime] = Field(
        default=None, description="Start time of the last successful crawl (UTC)"
    )

    @field_validator("last_crawl_at")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None
