"""Snapshot comparison schemas."""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class SnapshotValues(BaseModel):
    earnings: Decimal
    qualified_views: int
    seconds_viewed: int


class SnapshotComparisonRow(BaseModel):
    """Values of one item on two days and their difference (missing side counts as zero)."""

    item_id: str
    title: Optional[str] = None
    owner_id: Optional[str] = None
    from_values: Optional[SnapshotValues] = None
    to_values: Optional[SnapshotValues] = None
    delta: SnapshotValues
