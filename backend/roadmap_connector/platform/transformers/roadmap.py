"""Normalize roadmap records into RoadmapItem.

``normalize`` is pure and total: every missing field is defaulted, nothing
raises, and the same record always yields an equal item.
"""

from typing import List, Optional

from roadmap_connector.platform.entities.roadmap import RoadmapItem, RoadmapRecord, RoadmapTag

DEFAULT_URL_TEMPLATE = "https://www.microsoft.com/microsoft-365/roadmap?id={id}"
UNKNOWN_STATUS = "Unknown"


def _tag_names(tags: Optional[List[RoadmapTag]]) -> List[str]:
    """Flatten a tag group to its tag names, skipping nameless tags."""
    return [tag.tag_name for tag in tags or [] if tag.tag_name]


def normalize(record: RoadmapRecord, url_template: str = DEFAULT_URL_TEMPLATE) -> RoadmapItem:
    """Reshape a roadmap record into a normalized item.

    Args:
        record: Record as returned by the roadmap API
        url_template: Canonical link used when the record has no explicit link;
            ``{id}`` is replaced by the record id

    Returns:
        RoadmapItem
    """
    item_id = str(record.id) if record.id is not None else ""
    title = record.title or ""
    description = record.description or ""
    more_info_link = record.more_info_link or ""
    tags = record.tags_container

    return RoadmapItem(
        id=item_id,
        guid=item_id,
        title=title,
        description=description,
        more_info_link=more_info_link,
        status=record.status or record.public_roadmap_status or UNKNOWN_STATUS,
        created=record.created,
        last_modified=record.modified,
        products=_tag_names(tags.products if tags else None),
        platforms=_tag_names(tags.platforms if tags else None),
        release_phase=_tag_names(tags.release_phase if tags else None),
        cloud_instances=_tag_names(tags.cloud_instances if tags else None),
        content=f"{title} - {description}",
        url=more_info_link or url_template.format(id=item_id),
    )
