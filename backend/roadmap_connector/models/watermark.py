"""Connector watermark model."""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from roadmap_connector.models._base import Base


class ConnectorWatermark(Base):
    """Last successful crawl start time, one row per connector instance."""

    __tablename__ = "connector_watermark"

    connector_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    last_crawl_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
