"""Roadmap entity schemas.

RoadmapRecord mirrors one entry of the roadmap JSON API; RoadmapItem is the
source-agnostic shape handed to the ingestion sink.
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from roadmap_connector.core.datetime_utils import parse_timestamp

_INTEGER = re.compile(r"-?\d+")


def _scalar_text(value: Any) -> Optional[str]:
    """Stringify a scalar; structured values carry no usable text."""
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _tag_group(value: Any) -> Optional[List[Any]]:
    """Keep the object entries of a tag group; anything but a list is no group."""
    if not isinstance(value, list):
        return None
    return [entry for entry in value if isinstance(entry, (dict, RoadmapTag))]


class RoadmapTag(BaseModel):
    """A single tag inside a tag group."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    tag_name: Optional[str] = Field(None, alias="tagName", description="Display name of the tag.")

    @field_validator("tag_name", mode="before")
    @classmethod
    def _coerce_tag_name(cls, value: Any) -> Optional[str]:
        return _scalar_text(value)


class RoadmapTagsContainer(BaseModel):
    """Tag groups attached to a roadmap record."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    products: Optional[List[RoadmapTag]] = Field(None, description="Products the item affects.")
    platforms: Optional[List[RoadmapTag]] = Field(None, description="Platforms (Web, iOS, ...).")
    release_phase: Optional[List[RoadmapTag]] = Field(
        None, alias="releasePhase", description="Release phases (Preview, GA, ...)."
    )
    cloud_instances: Optional[List[RoadmapTag]] = Field(
        None, alias="cloudInstances", description="Cloud instances (Worldwide, GCC, ...)."
    )

    @field_validator("products", "platforms", "release_phase", "cloud_instances", mode="before")
    @classmethod
    def _coerce_group(cls, value: Any) -> Optional[List[Any]]:
        return _tag_group(value)


class RoadmapRecord(BaseModel):
    """Roadmap entry as returned by the source API.

    Every field is optional: the normalizer defaults whatever is missing.
    Unparseable timestamps are treated as absent.
    """

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: Optional[int] = Field(None, description="Numeric roadmap identifier.")
    title: Optional[str] = Field(None, description="Title of the roadmap item.")
    description: Optional[str] = Field(None, description="Free-text description (may be HTML).")
    more_info_link: Optional[str] = Field(
        None, alias="moreInfoLink", description="Explicit link to more information."
    )
    status: Optional[str] = Field(None, description="Explicit status.")
    public_roadmap_status: Optional[str] = Field(
        None, alias="publicRoadmapStatus", description="Status as shown on the public roadmap."
    )
    created: Optional[datetime] = Field(None, description="Creation timestamp.")
    modified: Optional[datetime] = Field(None, description="Last modification timestamp.")
    public_disclosure_availability_date: Optional[str] = Field(
        None, alias="publicDisclosureAvailabilityDate"
    )
    public_preview_date: Optional[str] = Field(None, alias="publicPreviewDate")
    locale: Optional[str] = None
    tags: Optional[List[RoadmapTag]] = None
    tags_container: Optional[RoadmapTagsContainer] = Field(None, alias="tagsContainer")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
            return int(value.strip())
        return None

    @field_validator(
        "title",
        "description",
        "more_info_link",
        "status",
        "public_roadmap_status",
        "public_disclosure_availability_date",
        "public_preview_date",
        "locale",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _scalar_text(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> Optional[List[Any]]:
        return _tag_group(value)

    @field_validator("tags_container", mode="before")
    @classmethod
    def _coerce_tags_container(cls, value: Any) -> Any:
        if isinstance(value, (dict, RoadmapTagsContainer)):
            return value
        return None

    @field_validator("created", "modified", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Optional[datetime]:
        return parse_timestamp(value)


class RoadmapItem(BaseModel):
    """Normalized roadmap item, ready for projection into the ingestion format.

    ``id`` and ``guid`` are always equal.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        ..., description="Stringified upstream id; empty when the upstream id is missing."
    )
    guid: str = Field(..., description="Same value as id.")
    title: str = ""
    description: str = ""
    more_info_link: str = ""
    status: str = "Unknown"
    created: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    products: List[str] = Field(default_factory=list)
    platforms: List[str] = Field(default_factory=list)
    release_phase: List[str] = Field(default_factory=list)
    cloud_instances: List[str] = Field(default_factory=list)
    content: str = Field("", description="Full-text blob: '<title> - <description>'.")
    url: str = Field("", description="Display URL of the item.")
