"""
Duplicate-upload advisory.

A user re-uploading an export that is already on file, under a different snapshot
date, would create a fake "no change" day and shift every later delta. Before
committing, compare the batch against stored snapshots day by day; a day where more
than 90% of the shared items carry the same earnings and qualified views is flagged.
Nothing is written; the caller decides whether to block, warn or re-date.
"""
import hashlib
import math
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from snapshot_engine.config import get_settings
from snapshot_engine.logging_config import get_logger
from snapshot_engine.models import Snapshot
from snapshot_engine.schemas.duplicate import DuplicateCheckResult, RedateResult
from snapshot_engine.schemas.ingest import NormalizedRecord, RecordInput, coerce_record
from snapshot_engine.store import MetricStore
from snapshot_engine.utils.dates import DateLike, as_day

logger = get_logger(__name__)


def _format_amount(value: Decimal) -> str:
    """Plain decimal, no exponent, no trailing zeros: 12.30 -> 12.3, 100 -> 100."""
    text = format(Decimal(value).normalize(), "f")
    return "0" if text in ("-0", "") else text


def _uploaded_values(record: NormalizedRecord, fallback: date) -> Tuple[Decimal, int, int]:
    point = record.latest_snapshot(fallback)
    if point is None:
        return Decimal("0"), 0, 0
    return point.earnings, point.qualified_views, point.seconds_viewed


def compute_fingerprint(batch: Mapping[str, RecordInput], snapshot_date: DateLike) -> str:
    """
    SHA-256 hex of the sorted `item_id|earnings|qualified_views|seconds_viewed` lines.
    Undated points count as snapshot_date, as they would be stored.
    """
    day = as_day(snapshot_date)
    lines = []
    for item_id, raw in batch.items():
        earnings, views, seconds = _uploaded_values(coerce_record(raw), day)
        lines.append(f"{item_id}|{_format_amount(earnings)}|{views}|{seconds}")
    lines.sort()
    return hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()


def _group_by_day(snapshots: Sequence[Snapshot]) -> Dict[date, List[Snapshot]]:
    grouped: Dict[date, List[Snapshot]] = {}
    for snap in snapshots:
        grouped.setdefault(snap.snapshot_date, []).append(snap)
    return grouped


async def check_duplicate(
    db: AsyncSession,
    batch: Mapping[str, RecordInput],
    proposed_date: DateLike,
) -> DuplicateCheckResult:
    """Flag the batch when its values already exist in the store under another day."""
    settings = get_settings()
    threshold = settings.duplicate_match_threshold
    tolerance = Decimal(str(settings.duplicate_earnings_tolerance))
    proposed_day = as_day(proposed_date)

    records = {item_id: coerce_record(raw) for item_id, raw in batch.items()}
    fingerprint = compute_fingerprint(records, proposed_day)
    if not records:
        return DuplicateCheckResult(is_duplicate=False, proposed_date=proposed_day, fingerprint=fingerprint)

    uploaded = {item_id: _uploaded_values(rec, proposed_day) for item_id, rec in records.items()}
    history = await MetricStore(db).get_snapshots_for_items(list(records))

    best_day: Optional[date] = None
    best_score = 0.0
    # Newest day first, so on equal scores the most recent day is kept.
    for day, snapshots in _group_by_day(history).items():
        total = 0
        matches = 0
        for snap in snapshots:
            values = uploaded.get(snap.item_id)
            if values is None:
                continue
            total += 1
            earnings, views, _ = values
            if (
                abs(Decimal(snap.lifetime_earnings or 0) - earnings) < tolerance
                and int(snap.lifetime_qualified_views or 0) == views
            ):
                matches += 1
        score = matches / total if total else 0.0
        logger.debug("duplicate_check.day_score", day=day.isoformat(), matches=matches, total=total)
        if score > best_score and score > threshold:
            best_score = score
            best_day = day

    if best_day is not None and best_day != proposed_day:
        percent = int(math.floor(best_score * 100 + 0.5))
        logger.info(
            "duplicate_check.duplicate_detected",
            existing_date=best_day.isoformat(),
            proposed_date=proposed_day.isoformat(),
            match_score_percent=percent,
        )
        return DuplicateCheckResult(
            is_duplicate=True,
            existing_date=best_day,
            proposed_date=proposed_day,
            match_score_percent=percent,
            fingerprint=fingerprint,
        )
    return DuplicateCheckResult(is_duplicate=False, proposed_date=proposed_day, fingerprint=fingerprint)


async def redate_snapshots(
    db: AsyncSession,
    item_ids: Sequence[str],
    old_date: DateLike,
    new_date: DateLike,
) -> RedateResult:
    """
    Move these items' snapshots from old_date to new_date (fix-up after a duplicate
    advisory). An item that already has a snapshot on new_date makes the update fail
    on the unique key; the caller's transaction then rolls back as a whole. Flushes
    only; the caller commits.
    """
    old_day, new_day = as_day(old_date), as_day(new_date)
    if old_day == new_day:
        raise ValueError("old_date and new_date are the same day")
    updated = await MetricStore(db).move_snapshots(list(dict.fromkeys(item_ids)), old_day, new_day)
    logger.info(
        "duplicate_check.snapshots_redated",
        old_date=old_day.isoformat(),
        new_date=new_day.isoformat(),
        updated=updated,
    )
    return RedateResult(old_date=old_day, new_date=new_day, updated=updated)
