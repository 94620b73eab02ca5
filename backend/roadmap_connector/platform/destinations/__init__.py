"""Ingestion sinks."""

from roadmap_connector.platform.destinations._base import BaseDestination
from roadmap_connector.platform.destinations.graph_connector import GraphConnectorDestination

__all__ = ["BaseDestination", "GraphConnectorDestination"]
