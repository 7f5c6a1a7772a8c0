"""Snapshot model: cumulative-to-date metrics of one content item on one day."""
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapshot_engine.db import Base

EARNINGS_ESTIMATED = "estimated"
EARNINGS_APPROXIMATE = "approximate"


class Snapshot(Base):
    """One row per (item_id, snapshot_date); snapshot_date is a calendar day."""

    __tablename__ = "snapshots"
    __table_args__ = (
        UniqueConstraint("item_id", "snapshot_date", name="ux_snapshots_item_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    item_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("content_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    lifetime_earnings: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    lifetime_qualified_views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    lifetime_seconds_viewed: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    three_second_views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    one_minute_views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    views: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    views_source: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reactions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    comments: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shares: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    avg_seconds_viewed: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    earnings_column: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)  # estimated | approximate
    quarter_range: Mapped[Optional[str]] = mapped_column(String(16), nullable=True, index=True)  # e.g. 2025-Q2
    data_source: Mapped[str] = mapped_column(String(32), default="csv", nullable=False)
    raw_data: Mapped[Optional[dict]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    content_item = relationship("ContentItem", back_populates="snapshots")
