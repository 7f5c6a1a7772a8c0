"""Delta output schema."""
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class DeltaOut(BaseModel):
    """A computed delta; created=False when the row already existed."""

    item_id: str
    from_date: date
    to_date: date
    earnings_delta: Decimal
    qualified_views_delta: int
    seconds_viewed_delta: int
    owner_id: Optional[str] = None
    created: bool = Field(..., description="True if this recompute inserted the row")
