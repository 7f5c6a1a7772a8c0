"""
Content lineage across takedown / re-upload cycles.

link_lineage runs once, when an item id is first seen: the newest removed item with the
same exact title and content type, published earlier, becomes its previous iteration.
Matching is exact and case-sensitive; near-miss titles are left for manual linking
(link_to_previous).
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from snapshot_engine.logging_config import get_logger
from snapshot_engine.models import ContentItem
from snapshot_engine.models.content_item import STATUS_LIVE, STATUS_REMOVED
from snapshot_engine.schemas.lineage import (
    IterationEntry,
    LineageAssignment,
    LineageCandidate,
    LineageHistory,
)
from snapshot_engine.store import MetricStore

logger = get_logger(__name__)


class ItemNotFoundError(LookupError):
    """Raised when a content item id is not in the store."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"content item not found: {item_id}")
        self.item_id = item_id


def _assignment_from_previous(prev: ContentItem, owner_id: Optional[str]) -> LineageAssignment:
    return LineageAssignment(
        iteration_number=(prev.iteration_number or 1) + 1,
        original_item_id=prev.original_item_id or prev.id,
        previous_iteration_id=prev.id,
        owner_id=owner_id or prev.owner_id,
    )


async def link_lineage(store: MetricStore, candidate: LineageCandidate) -> LineageAssignment:
    """Compute lineage fields for a new item. Read-only; the caller persists the result."""
    matches = await store.find_removed_items_by_title_and_type(
        candidate.title,
        candidate.content_type,
        candidate.publish_time,
        limit=1,
    )
    if not matches:
        return LineageAssignment(owner_id=candidate.owner_id)
    prev = matches[0]
    assignment = _assignment_from_previous(prev, candidate.owner_id)
    logger.info(
        "lineage.reupload_detected",
        title=candidate.title,
        previous_item_id=prev.id,
        iteration_number=assignment.iteration_number,
    )
    return assignment


async def mark_removed(
    db: AsyncSession,
    item_ids: Iterable[str],
    reason: Optional[str] = None,
    removed_at: Optional[datetime] = None,
) -> int:
    """
    Take items down: status=removed, removed_date set, and the item's iteration record
    gets removal_date / reason (created first if the item predates iteration tracking).
    Flushes only; the caller commits. Returns the number of items found.
    """
    ids = list(dict.fromkeys(item_ids))
    if not ids:
        raise ValueError("item_ids must not be empty")
    removed_at = removed_at or datetime.now(timezone.utc)
    store = MetricStore(db)
    items = await store.get_items(ids)
    for item_id in ids:
        item = items.get(item_id)
        if item is None:
            logger.warning("lineage.remove_unknown_item", item_id=item_id)
            continue
        item.status = STATUS_REMOVED
        item.removed_date = removed_at
        record = await store.get_iteration_record(item.id)
        if record is None:
            await store.upsert_iteration_record(
                item.id,
                {
                    "original_item_id": item.original_item_id or item.id,
                    "iteration_number": item.iteration_number or 1,
                    "upload_date": item.publish_time or removed_at,
                    "removal_date": removed_at,
                    "reason": reason,
                },
            )
        else:
            record.removal_date = removed_at
            record.reason = reason
    await db.flush()
    logger.info("lineage.items_removed", count=len(items), reason=reason)
    return len(items)


async def restore_items(db: AsyncSession, item_ids: Iterable[str]) -> int:
    """Put removed items back live. The iteration record keeps its removal history."""
    ids = list(dict.fromkeys(item_ids))
    if not ids:
        raise ValueError("item_ids must not be empty")
    items = await MetricStore(db).get_items(ids)
    for item in items.values():
        item.status = STATUS_LIVE
        item.removed_date = None
    await db.flush()
    return len(items)


async def link_to_previous(db: AsyncSession, new_item_id: str, previous_item_id: str) -> LineageAssignment:
    """
    Manually link an existing item as the next iteration of previous_item_id (for titles
    the exact matcher missed). The new item keeps its own owner when it has one.
    """
    if new_item_id == previous_item_id:
        raise ValueError("an item cannot be linked to itself")
    store = MetricStore(db)
    new_item = await store.get_item(new_item_id)
    if new_item is None:
        raise ItemNotFoundError(new_item_id)
    prev = await store.get_item(previous_item_id)
    if prev is None:
        raise ItemNotFoundError(previous_item_id)

    assignment = _assignment_from_previous(prev, new_item.owner_id)
    new_item.iteration_number = assignment.iteration_number
    new_item.original_item_id = assignment.original_item_id
    new_item.previous_iteration_id = assignment.previous_iteration_id
    new_item.owner_id = assignment.owner_id
    await store.upsert_iteration_record(
        new_item.id,
        {
            "original_item_id": assignment.original_item_id,
            "iteration_number": assignment.iteration_number,
            "upload_date": new_item.publish_time or datetime.now(timezone.utc),
        },
    )
    await db.flush()
    logger.info(
        "lineage.manual_link",
        new_item_id=new_item_id,
        previous_item_id=previous_item_id,
        iteration_number=assignment.iteration_number,
    )
    return assignment


async def get_iteration_history(db: AsyncSession, item_id: str) -> LineageHistory:
    """Every iteration of the item's content, oldest iteration first, with latest snapshot values."""
    store = MetricStore(db)
    item = await store.get_item(item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    original_id = item.original_item_id or item.id
    members = await store.get_lineage_items(original_id)
    member_ids = [m.id for m in members]
    records = await store.get_iteration_records(member_ids)
    latest = {}
    for snap in await store.get_snapshots_for_items(member_ids):
        latest.setdefault(snap.item_id, snap)

    entries: List[IterationEntry] = []
    for m in members:
        snap = latest.get(m.id)
        record = records.get(m.id)
        entries.append(
            IterationEntry(
                item_id=m.id,
                iteration_number=m.iteration_number,
                title=m.title,
                content_type=m.content_type,
                publish_time=m.publish_time,
                status=m.status,
                removed_date=m.removed_date,
                previous_iteration_id=m.previous_iteration_id,
                owner_id=m.owner_id,
                removal_reason=record.reason if record else None,
                latest_snapshot_date=snap.snapshot_date if snap else None,
                latest_earnings=snap.lifetime_earnings if snap else None,
                latest_qualified_views=snap.lifetime_qualified_views if snap else None,
            )
        )
    return LineageHistory(
        original_item_id=original_id,
        iterations=entries,
        total_iterations=len(entries),
    )
