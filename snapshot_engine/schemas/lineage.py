"""Lineage (iteration) schemas."""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class LineageCandidate(BaseModel):
    """Identity of a not-yet-stored item, as seen by the linker."""

    title: str
    content_type: str
    publish_time: datetime
    owner_id: Optional[str] = None


class LineageAssignment(BaseModel):
    """Lineage fields to persist on a new content item."""

    iteration_number: int = Field(1, ge=1)
    original_item_id: Optional[str] = Field(None, description="None means the item is iteration 1")
    previous_iteration_id: Optional[str] = None
    owner_id: Optional[str] = None


class IterationEntry(BaseModel):
    """One iteration in a lineage history, with its latest snapshot."""

    item_id: str
    iteration_number: int
    title: Optional[str] = None
    content_type: Optional[str] = None
    publish_time: Optional[datetime] = None
    status: str
    removed_date: Optional[datetime] = None
    previous_iteration_id: Optional[str] = None
    owner_id: Optional[str] = None
    removal_reason: Optional[str] = None
    latest_snapshot_date: Optional[date] = None
    latest_earnings: Optional[Decimal] = None
    latest_qualified_views: Optional[int] = None


class LineageHistory(BaseModel):
    """All iterations of one piece of content."""

    original_item_id: str
    iterations: List[IterationEntry]
    total_iterations: int
