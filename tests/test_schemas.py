"""Validation of normalized upload records."""
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from snapshot_engine.schemas.ingest import ContentType, NormalizedRecord, SnapshotPoint, coerce_record


def test_earnings_kept_as_uploaded() -> None:
    """Rounding to cents happens on store; the record keeps the exact amount."""
    point = SnapshotPoint(earnings="12.345")
    assert point.earnings == Decimal("12.345")
    assert SnapshotPoint().earnings == Decimal("0")


def test_unknown_content_type_rejected() -> None:
    with pytest.raises(ValidationError):
        NormalizedRecord(content_type="Hologram")


def test_lineage_identity_requires_title_type_and_publish_time() -> None:
    full = NormalizedRecord(
        title="Clip",
        content_type=ContentType.REEL,
        publish_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    assert full.has_lineage_identity is True
    assert NormalizedRecord(title="", content_type="Reel", publish_time=full.publish_time).has_lineage_identity is False
    assert NormalizedRecord(title="Clip", content_type="Reel").has_lineage_identity is False
    assert NormalizedRecord(title="Clip", publish_time=full.publish_time).has_lineage_identity is False


def test_latest_snapshot_uses_fallback_for_undated_points() -> None:
    record = NormalizedRecord(
        snapshots=[
            SnapshotPoint(date=date(2024, 3, 1), qualified_views=1),
            SnapshotPoint(qualified_views=2),
        ]
    )
    assert record.latest_snapshot(date(2024, 3, 5)).qualified_views == 2
    assert record.latest_snapshot(date(2024, 2, 1)).qualified_views == 1
    assert NormalizedRecord().latest_snapshot(date(2024, 3, 5)) is None


def test_coerce_record_accepts_models_and_dicts() -> None:
    record = NormalizedRecord(title="x")
    assert coerce_record(record) is record
    coerced = coerce_record({"title": "y", "data_source": "manual"})
    assert isinstance(coerced, NormalizedRecord)
    assert coerced.data_source == "manual"
