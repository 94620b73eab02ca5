"""SQLAlchemy models."""

from roadmap_connector.models._base import Base
from roadmap_connector.models.watermark import ConnectorWatermark

__all__ = ["Base", "ConnectorWatermark"]
