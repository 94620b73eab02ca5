"""Transformers that reshape source records."""

from roadmap_connector.platform.transformers.roadmap import normalize

__all__ = ["normalize"]
