"""Graph external connection schema and search result template."""

from typing import Any, Dict

CONNECTION_SCHEMA: Dict[str, Any] = {
    "baseType": "microsoft.graph.externalItem",
    "properties": [
        {
            "name": "title",
            "type": "string",
            "isSearchable": True,
            "isQueryable": True,
            "isRetrievable": True,
            "labels": ["title"],
        },
        {
            "name": "description",
            "type": "string",
            "isSearchable": True,
            "isRetrievable": True,
        },
        {
            "name": "status",
            "type": "string",
            "isQueryable": True,
            "isRetrievable": True,
            "isRefinable": True,
        },
        {
            "name": "releasePhase",
            "type": "stringCollection",
            "isQueryable": True,
            "isRetrievable": True,
            "isRefinable": True,
        },
        {
            "name": "products",
            "type": "stringCollection",
            "isQueryable": True,
            "isRetrievable": True,
            "isRefinable": True,
        },
        {
            "name": "platforms",
            "type": "stringCollection",
            "isQueryable": True,
            "isRetrievable": True,
            "isRefinable": True,
        },
        {
            "name": "cloudInstances",
            "type": "stringCollection",
            "isQueryable": True,
            "isRetrievable": True,
            "isRefinable": True,
        },
        {
            "name": "created",
            "type": "dateTime",
            "isQueryable": True,
            "isRetrievable": True,
            "labels": ["createdDateTime"],
        },
        {
            "name": "lastModified",
            "type": "dateTime",
            "isQueryable": True,
            "isRetrievable": True,
            "labels": ["lastModifiedDateTime"],
        },
        {
            "name": "moreInfoLink",
            "type": "string",
            "isRetrievable": True,
            "labels": ["url"],
        },
    ],
}

RESULT_TEMPLATE_CARD: Dict[str, Any] = {
    "type": "AdaptiveCard",
    "version": "1.3",
    "$schema": "http://adaptivecards.io/schemas/adaptive-card.json",
    "body": [
        {
            "type": "TextBlock",
            "text": "[${title}](${moreInfoLink})",
            "weight": "Bolder",
            "size": "Medium",
            "color": "Accent",
            "wrap": True,
        },
        {
            "type": "TextBlock",
            "text": "${status} · ${join(products, ', ')} · ${join(releasePhase, ', ')}",
            "isSubtle": True,
            "spacing": "Small",
            "wrap": True,
        },
        {
            "type": "TextBlock",
            "text": "${ResultSnippet}",
            "maxLines": 3,
            "wrap": True,
        },
    ],
}


def build_search_settings(connection_id: str) -> Dict[str, Any]:
    """Search settings body registering the result template for a connection."""
    return {
        "searchSettings": {
            "searchResultTemplates": [
                {
                    "id": connection_id,
                    "priority": 1,
                    "layout": {"additionalProperties": RESULT_TEMPLATE_CARD},
                }
            ]
        }
    }
