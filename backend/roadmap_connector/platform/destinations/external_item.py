"""Mapping from RoadmapItem to the Graph external item payload."""

from typing import Any, Callable, Dict, List, Optional

from roadmap_connector.platform.destinations.acl import get_acl_from_item
from roadmap_connector.platform.entities.roadmap import RoadmapItem

AclProvider = Callable[[RoadmapItem], List[Dict[str, str]]]


def get_external_item_from_item(
    item: RoadmapItem, acl_provider: Optional[AclProvider] = None
) -> Dict[str, Any]:
    """Transform a normalized item into a Graph externalItem.

    String properties carry an ``@odata.type`` of ``String``, string lists
    ``Collection(String)`` and timestamps ``DateTimeOffset``. Timestamps are
    omitted when the item has none.

    Args:
        item: Normalized roadmap item
        acl_provider: Derives the ACL from the item; defaults to grant-everyone

    Returns:
        JSON-serializable externalItem body
    """
    acl_provider = acl_provider or get_acl_from_item
    properties: Dict[str, Any] = {
        "title@odata.type": "String",
        "title": item.title,
        "description@odata.type": "String",
        "description": item.description,
        "status@odata.type": "String",
        "status": item.status,
        "releasePhase@odata.type": "Collection(String)",
        "releasePhase": list(item.release_phase),
        "products@odata.type": "Collection(String)",
        "products": list(item.products),
        "platforms@odata.type": "Collection(String)",
        "platforms": list(item.platforms),
        "cloudInstances@odata.type": "Collection(String)",
        "cloudInstances": list(item.cloud_instances),
        "moreInfoLink@odata.type": "String",
        "moreInfoLink": item.url,
    }
    if item.created is not None:
        properties["created@odata.type"] = "DateTimeOffset"
        properties["created"] = item.created.isoformat()
    if item.last_modified is not None:
        properties["lastModified@odata.type"] = "DateTimeOffset"
        properties["lastModified"] = item.last_modified.isoformat()

    return {
        "id": item.id,
        "properties": properties,
        "content": {"value": item.content, "type": "text"},
        "acl": acl_provider(item),
    }
