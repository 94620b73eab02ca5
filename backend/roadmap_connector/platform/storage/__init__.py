"""Persistent storage for connector state."""

from roadmap_connector.platform.storage.watermark import (
    FileWatermarkStore,
    SqlWatermarkStore,
    WatermarkStore,
    get_watermark_store,
)

__all__ = ["FileWatermarkStore", "SqlWatermarkStore", "WatermarkStore", "get_watermark_store"]
