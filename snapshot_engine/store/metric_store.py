"""
MetricStore: persistence for content items, snapshots, deltas and iteration records.

Every write is an explicit upsert: read by key, otherwise insert inside a SAVEPOINT;
an IntegrityError there means another writer won the race, so the winning row is
re-read in the same transaction. If nothing is found the error was something else
(e.g. a foreign key) and is re-raised. Transactions belong to the caller.
"""
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import func, or_, select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from snapshot_engine.models import ContentItem, Delta, IterationRecord, Snapshot
from snapshot_engine.models.content_item import STATUS_REMOVED

T = TypeVar("T")


@dataclass
class ItemSnapshots:
    """A content item with its two most recent snapshots."""

    item: ContentItem
    current: Snapshot
    previous: Snapshot


class MetricStore:
    """Store bound to one AsyncSession (one transaction scope)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def ping(self) -> None:
        await self.db.execute(text("SELECT 1"))

    async def _insert_or_get(
        self,
        row: T,
        lookup: Callable[[], Awaitable[Optional[T]]],
    ) -> Tuple[T, bool]:
        try:
            async with self.db.begin_nested():
                self.db.add(row)
        except IntegrityError:
            raced = await lookup()
            if raced is None:
                raise
            return raced, False
        return row, True

    # --- content items ---

    async def get_item(self, item_id: str) -> Optional[ContentItem]:
        return await self.db.get(ContentItem, item_id)

    async def get_items(self, item_ids: Iterable[str]) -> Dict[str, ContentItem]:
        ids = list(item_ids)
        if not ids:
            return {}
        r = await self.db.execute(select(ContentItem).where(ContentItem.id.in_(ids)))
        return {item.id: item for item in r.scalars().all()}

    async def find_removed_items_by_title_and_type(
        self,
        title: str,
        content_type: str,
        before_publish_time: datetime,
        limit: int = 1,
    ) -> List[ContentItem]:
        """Removed items with this exact title and type published earlier, most advanced iteration first."""
        q = (
            select(ContentItem)
            .where(
                ContentItem.status == STATUS_REMOVED,
                ContentItem.content_type == content_type,
                ContentItem.title == title,
                ContentItem.publish_time < before_publish_time,
            )
            .order_by(ContentItem.iteration_number.desc())
            .limit(limit)
        )
        r = await self.db.execute(q)
        return list(r.scalars().all())

    async def upsert_item(self, item_id: str, values: Dict[str, Any]) -> Tuple[ContentItem, bool]:
        """Insert the item unless it exists. Returns (item, created); an existing row is not modified."""
        existing = await self.get_item(item_id)
        if existing is not None:
            return existing, False
        return await self._insert_or_get(
            ContentItem(id=item_id, **values),
            lambda: self.db.get(ContentItem, item_id, populate_existing=True),
        )

    async def get_lineage_items(self, original_item_id: str) -> List[ContentItem]:
        q = (
            select(ContentItem)
            .where(
                or_(
                    ContentItem.original_item_id == original_item_id,
                    ContentItem.id == original_item_id,
                )
            )
            .order_by(ContentItem.iteration_number.asc(), ContentItem.publish_time.asc())
        )
        r = await self.db.execute(q)
        return list(r.scalars().all())

    # --- iteration records ---

    async def get_iteration_record(self, current_item_id: str) -> Optional[IterationRecord]:
        r = await self.db.execute(
            select(IterationRecord).where(IterationRecord.current_item_id == current_item_id)
        )
        return r.scalar_one_or_none()

    async def get_iteration_records(self, item_ids: Iterable[str]) -> Dict[str, IterationRecord]:
        ids = list(item_ids)
        if not ids:
            return {}
        r = await self.db.execute(select(IterationRecord).where(IterationRecord.current_item_id.in_(ids)))
        return {rec.current_item_id: rec for rec in r.scalars().all()}

    async def upsert_iteration_record(
        self,
        current_item_id: str,
        values: Dict[str, Any],
    ) -> Tuple[IterationRecord, bool]:
        """Create the item's iteration record, or update the existing one in place."""
        existing = await self.get_iteration_record(current_item_id)
        if existing is None:
            row, created = await self._insert_or_get(
                IterationRecord(current_item_id=current_item_id, **values),
                lambda: self.get_iteration_record(current_item_id),
            )
            if created:
                return row, True
            existing = row
        for key, value in values.items():
            setattr(existing, key, value)
        await self.db.flush()
        return existing, False

    # --- snapshots ---

    async def get_snapshot(self, item_id: str, snapshot_date: date) -> Optional[Snapshot]:
        r = await self.db.execute(
            select(Snapshot).where(
                Snapshot.item_id == item_id,
                Snapshot.snapshot_date == snapshot_date,
            )
        )
        return r.scalar_one_or_none()

    async def upsert_snapshot(
        self,
        item_id: str,
        snapshot_date: date,
        fields: Dict[str, Any],
        overwrite: bool = False,
    ) -> Tuple[Snapshot, bool]:
        """
        Insert the (item_id, snapshot_date) row, or leave the existing one alone unless
        overwrite is set. Returns (snapshot, created).
        """
        existing = await self.get_snapshot(item_id, snapshot_date)
        if existing is None:
            row, created = await self._insert_or_get(
                Snapshot(item_id=item_id, snapshot_date=snapshot_date, **fields),
                lambda: self.get_snapshot(item_id, snapshot_date),
            )
            if created:
                return row, True
            existing = row
        if overwrite:
            for key, value in fields.items():
                setattr(existing, key, value)
            await self.db.flush()
        return existing, False

    async def get_snapshots_for_items(self, item_ids: Iterable[str]) -> List[Snapshot]:
        """All snapshots of these items, newest day first."""
        ids = list(item_ids)
        if not ids:
            return []
        r = await self.db.execute(
            select(Snapshot)
            .where(Snapshot.item_id.in_(ids))
            .order_by(Snapshot.snapshot_date.desc(), Snapshot.item_id)
        )
        return list(r.scalars().all())

    async def get_latest_snapshot(self, item_id: str) -> Optional[Snapshot]:
        r = await self.db.execute(
            select(Snapshot)
            .where(Snapshot.item_id == item_id)
            .order_by(Snapshot.snapshot_date.desc())
            .limit(1)
        )
        return r.scalar_one_or_none()

    async def get_snapshots_on(self, day: date) -> List[Tuple[Snapshot, ContentItem]]:
        r = await self.db.execute(
            select(Snapshot, ContentItem)
            .join(ContentItem, ContentItem.id == Snapshot.item_id)
            .where(Snapshot.snapshot_date == day)
        )
        return [(snap, item) for snap, item in r.all()]

    async def get_items_with_multiple_snapshots(self) -> List[ItemSnapshots]:
        """Every item with at least two snapshots, paired with its two most recent."""
        rn = (
            func.row_number()
            .over(partition_by=Snapshot.item_id, order_by=Snapshot.snapshot_date.desc())
            .label("rn")
        )
        ranked = select(Snapshot.id.label("snapshot_id"), rn).subquery()
        q = (
            select(Snapshot, ContentItem, ranked.c.rn)
            .join(ranked, ranked.c.snapshot_id == Snapshot.id)
            .join(ContentItem, ContentItem.id == Snapshot.item_id)
            .where(ranked.c.rn <= 2)
            .order_by(Snapshot.item_id, ranked.c.rn)
        )
        r = await self.db.execute(q)
        grouped: Dict[str, List[Any]] = {}
        items: Dict[str, ContentItem] = {}
        for snap, item, _ in r.all():
            grouped.setdefault(item.id, []).append(snap)
            items[item.id] = item
        return [
            ItemSnapshots(item=items[item_id], current=snaps[0], previous=snaps[1])
            for item_id, snaps in grouped.items()
            if len(snaps) >= 2
        ]

    async def move_snapshots(self, item_ids: Sequence[str], old_date: date, new_date: date) -> int:
        """Re-date snapshots of these items from old_date to new_date. Returns rows changed."""
        if not item_ids:
            return 0
        r = await self.db.execute(
            update(Snapshot)
            .where(
                Snapshot.item_id.in_(list(item_ids)),
                Snapshot.snapshot_date == old_date,
            )
            .values(snapshot_date=new_date)
            .execution_options(synchronize_session="fetch")
        )
        return r.rowcount or 0

    # --- deltas ---

    async def get_delta(self, item_id: str, from_date: date, to_date: date) -> Optional[Delta]:
        r = await self.db.execute(
            select(Delta).where(
                Delta.item_id == item_id,
                Delta.from_date == from_date,
                Delta.to_date == to_date,
            )
        )
        return r.scalar_one_or_none()

    async def upsert_delta(
        self,
        item_id: str,
        from_date: date,
        to_date: date,
        fields: Dict[str, Any],
    ) -> Tuple[Delta, bool]:
        """Insert the delta unless that (item, from, to) already exists; existing rows are never changed."""
        existing = await self.get_delta(item_id, from_date, to_date)
        if existing is not None:
            return existing, False
        return await self._insert_or_get(
            Delta(item_id=item_id, from_date=from_date, to_date=to_date, **fields),
            lambda: self.get_delta(item_id, from_date, to_date),
        )

    async def count_deltas(self) -> int:
        r = await self.db.execute(select(func.count(Delta.id)))
        return r.scalar_one()
