"""Normalized upload records and the batch ingest result."""
import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


class ContentType(str, Enum):
    """Content types produced by the upload parsers and platform syncs."""

    VIDEO = "Video"
    VIDEOS = "Videos"
    REEL = "Reel"
    PHOTO = "Photo"
    TEXT = "Text"
    LINK = "Link"
    LINKS = "Links"
    STATUS = "Status"


class Engagement(BaseModel):
    """Per-period engagement counts."""

    reactions: int = 0
    comments: int = 0
    shares: int = 0


class SnapshotPoint(BaseModel):
    """One dated cumulative reading inside a record (a CSV export may carry several)."""

    date: Optional[dt.date] = Field(None, description="Snapshot day; falls back to the upload date")
    earnings: Decimal = Field(Decimal("0"), description="Lifetime earnings to date, as uploaded (rounded on store)")
    qualified_views: int = Field(0, description="Lifetime qualified views to date")
    seconds_viewed: int = Field(0, description="Lifetime seconds viewed to date")
    engagement: Engagement = Field(default_factory=Engagement)


class NormalizedRecord(BaseModel):
    """Per-item record produced by the column-mapping parser or a platform sync."""

    item_id: Optional[str] = Field(None, description="Platform id; the batch key wins when both are set")
    title: Optional[str] = None
    content_type: Optional[ContentType] = None
    publish_time: Optional[dt.datetime] = None
    owner_id: Optional[str] = None
    asset_tag: Optional[str] = None
    description: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Duration in seconds")
    permalink: Optional[str] = None
    page_id: Optional[str] = None
    page_name: Optional[str] = None
    snapshots: List[SnapshotPoint] = Field(default_factory=list)
    views: Optional[int] = Field(None, ge=0)
    views_source: Optional[str] = Field(None, description='"views" or "1-minute"')
    three_second_views: Optional[int] = None
    one_minute_views: Optional[int] = None
    avg_seconds_viewed: Optional[Decimal] = None
    approximate_earnings: bool = Field(False, description="Earnings came from the approximate column")
    quarter_range: Optional[str] = Field(None, description="e.g. 2025-Q2")
    data_source: str = Field("csv", description="csv | manual | facebook | instagram | youtube ...")

    @property
    def has_lineage_identity(self) -> bool:
        return bool(self.title) and self.content_type is not None and self.publish_time is not None

    def latest_snapshot(self, fallback_date: dt.date) -> Optional[SnapshotPoint]:
        """Chronologically latest point; an undated point sorts as fallback_date."""
        if not self.snapshots:
            return None
        return max(self.snapshots, key=lambda p: p.date or fallback_date)


class IngestError(BaseModel):
    """One item that failed to ingest."""

    item_id: str
    error: str


class IngestResult(BaseModel):
    """Batch summary; the single thing an operator sees after an upload."""

    created_items: int = 0
    updated_items: int = 0
    created_snapshots: int = 0
    updated_snapshots: int = 0
    errors: List[IngestError] = Field(default_factory=list)
    new_item_count: int = 0


RecordInput = Union[NormalizedRecord, Dict[str, Any]]


def coerce_record(raw: RecordInput) -> NormalizedRecord:
    """Accept a parsed record or a plain dict from the column mapper."""
    if isinstance(raw, NormalizedRecord):
        return raw
    return NormalizedRecord.model_validate(raw)
