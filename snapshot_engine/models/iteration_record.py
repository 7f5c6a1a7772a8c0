"""Iteration record: audit trail of one upload of a piece of content."""
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapshot_engine.db import Base


class IterationRecord(Base):
    """
    One row per content item (current_item_id), written at first ingestion.
    removal_date / reason are filled in place when that item is taken down.
    """

    __tablename__ = "iteration_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    original_item_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    current_item_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("content_items.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    iteration_number: Mapped[int] = mapped_column(Integer, nullable=False)
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    removal_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    content_item = relationship("ContentItem", back_populates="iteration_record")
