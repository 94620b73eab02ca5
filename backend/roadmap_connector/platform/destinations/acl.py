"""Access-control list derivation for ingested items."""

from typing import Dict, List

from roadmap_connector.platform.entities.roadmap import RoadmapItem

EVERYONE_GRANT: Dict[str, str] = {
    "accessType": "grant",
    "type": "everyone",
    "value": "everyone",
}


def get_acl_from_item(item: RoadmapItem) -> List[Dict[str, str]]:
    """Return the ACL for an item.

    Roadmap items are public, so every item is visible to everyone in the tenant.
    """
    return [dict(EVERYONE_GRANT)]
