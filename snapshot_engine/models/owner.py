"""Owner model: the artist/page a content item is credited to."""
from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from snapshot_engine.db import Base


class Owner(Base):
    """Owner table."""

    __tablename__ = "owners"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    content_items = relationship("ContentItem", back_populates="owner")
    deltas = relationship("Delta", back_populates="owner")
