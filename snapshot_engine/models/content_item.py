"""Content item model: one published work, keyed by its platform id."""
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapshot_engine.db import Base

STATUS_LIVE = "live"
STATUS_REMOVED = "removed"
ITEM_STATUSES = (STATUS_LIVE, STATUS_REMOVED)


class ContentItem(Base):
    """
    Content item (video/reel/photo/post).
    status: live | removed. removed items are never deleted; a re-upload of the same
    title + content_type becomes the next iteration (original_item_id / previous_iteration_id).
    """

    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    asset_tag: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    # title / content_type / publish_time nullable: incomplete rows still ingest, without lineage
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    publish_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # seconds
    permalink: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    page_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    page_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=STATUS_LIVE, nullable=False, index=True)
    removed_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    owner_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        ForeignKey("owners.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    # Lineage
    iteration_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    original_item_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    previous_iteration_id: Mapped[Optional[str]] = mapped_column(
        String(128),
        ForeignKey("content_items.id", ondelete="SET NULL"),
        nullable=True,
    )
    # Rollups: highest views seen across ingests
    lifetime_views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    views_source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    owner = relationship("Owner", back_populates="content_items")
    snapshots = relationship("Snapshot", back_populates="content_item")
    deltas = relationship("Delta", back_populates="content_item")
    iteration_record = relationship("IterationRecord", back_populates="content_item", uselist=False)
