"""Read-side helpers over snapshots: latest reading and day-to-day comparison."""
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from snapshot_engine.models import ContentItem, Snapshot
from snapshot_engine.schemas.snapshot import SnapshotComparisonRow, SnapshotValues
from snapshot_engine.store import MetricStore
from snapshot_engine.utils.dates import DateLike, as_day


async def get_latest_snapshot(db: AsyncSession, item_id: str) -> Optional[Snapshot]:
    return await MetricStore(db).get_latest_snapshot(item_id)


def _values(snap: Optional[Snapshot]) -> Optional[SnapshotValues]:
    if snap is None:
        return None
    return SnapshotValues(
        earnings=Decimal(snap.lifetime_earnings or 0),
        qualified_views=snap.lifetime_qualified_views or 0,
        seconds_viewed=snap.lifetime_seconds_viewed or 0,
    )


async def compare_snapshots(
    db: AsyncSession,
    from_date: DateLike,
    to_date: DateLike,
) -> List[SnapshotComparisonRow]:
    """
    Per item present on either day: both readings and to - from (a missing side counts
    as zero). Sorted by earnings difference, largest first.
    """
    store = MetricStore(db)
    from_rows = await store.get_snapshots_on(as_day(from_date))
    to_rows = await store.get_snapshots_on(as_day(to_date))
    from_map: Dict[str, Tuple[Snapshot, ContentItem]] = {snap.item_id: (snap, item) for snap, item in from_rows}
    to_map: Dict[str, Tuple[Snapshot, ContentItem]] = {snap.item_id: (snap, item) for snap, item in to_rows}

    rows: List[SnapshotComparisonRow] = []
    zero = SnapshotValues(earnings=Decimal("0"), qualified_views=0, seconds_viewed=0)
    for item_id in dict.fromkeys([*from_map, *to_map]):
        before = from_map.get(item_id)
        after = to_map.get(item_id)
        item = (after or before)[1]
        from_values = _values(before[0] if before else None)
        to_values = _values(after[0] if after else None)
        a, b = to_values or zero, from_values or zero
        rows.append(
            SnapshotComparisonRow(
                item_id=item_id,
                title=item.title,
                owner_id=item.owner_id,
                from_values=from_values,
                to_values=to_values,
                delta=SnapshotValues(
                    earnings=a.earnings - b.earnings,
                    qualified_views=a.qualified_views - b.qualified_views,
                    seconds_viewed=a.seconds_viewed - b.seconds_viewed,
                ),
            )
        )
    rows.sort(key=lambda r: r.delta.earnings, reverse=True)
    return rows
