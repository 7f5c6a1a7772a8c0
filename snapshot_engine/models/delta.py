"""Delta model: change between two consecutive snapshots of one item. Never updated."""
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapshot_engine.db import Base


class Delta(Base):
    """Unique on (item_id, from_date, to_date)."""

    __tablename__ = "deltas"
    __table_args__ = (
        UniqueConstraint("item_id", "from_date", "to_date", name="ux_deltas_item_from_to"),
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
    from_date: Mapped[date] = mapped_column(Date, nullable=False)
    to_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    earnings_delta: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    qualified_views_delta: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    seconds_viewed_delta: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    owner_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        ForeignKey("owners.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    content_item = relationship("ContentItem", back_populates="deltas")
    owner = relationship("Owner", back_populates="deltas")
