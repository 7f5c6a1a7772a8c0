"""
Delta computation: for every item with two or more snapshots, the change between its
two most recent snapshots. Full pass over the store; rows are insert-only.

A snapshot backfilled between two already-processed days produces a new delta on the
next pass, but the delta spanning the old pair stays as it was.
"""
import asyncio
from decimal import Decimal
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from snapshot_engine.logging_config import get_logger
from snapshot_engine.schemas.delta import DeltaOut
from snapshot_engine.store import MetricStore

logger = get_logger(__name__)

CENT = Decimal("0.01")

# Two passes at once would only redo each other's work.
_recompute_lock = asyncio.Lock()


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(CENT)


async def recompute_deltas(db: AsyncSession) -> List[DeltaOut]:
    """
    Materialize missing deltas and commit. Returns every nonzero delta of the current
    two-most-recent pairs; created=False for rows that already existed.
    Errors roll back the whole pass and propagate.
    """
    async with _recompute_lock:
        store = MetricStore(db)
        out: List[DeltaOut] = []
        created_count = 0
        try:
            pairs = await store.get_items_with_multiple_snapshots()
            for pair in pairs:
                current, previous = pair.current, pair.previous
                earnings_delta = _money(current.lifetime_earnings) - _money(previous.lifetime_earnings)
                views_delta = (current.lifetime_qualified_views or 0) - (previous.lifetime_qualified_views or 0)
                seconds_delta = (current.lifetime_seconds_viewed or 0) - (previous.lifetime_seconds_viewed or 0)
                if earnings_delta == 0 and views_delta == 0:
                    continue
                delta, created = await store.upsert_delta(
                    pair.item.id,
                    previous.snapshot_date,
                    current.snapshot_date,
                    {
                        "earnings_delta": earnings_delta,
                        "qualified_views_delta": views_delta,
                        "seconds_viewed_delta": seconds_delta,
                        "owner_id": pair.item.owner_id,
                    },
                )
                if created:
                    created_count += 1
                out.append(
                    DeltaOut(
                        item_id=delta.item_id,
                        from_date=delta.from_date,
                        to_date=delta.to_date,
                        earnings_delta=_money(delta.earnings_delta),
                        qualified_views_delta=delta.qualified_views_delta,
                        seconds_viewed_delta=delta.seconds_viewed_delta,
                        owner_id=delta.owner_id,
                        created=created,
                    )
                )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    logger.info("delta.recompute_done", items_scanned=len(pairs), deltas=len(out), created=created_count)
    return out
