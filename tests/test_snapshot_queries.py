"""
Read helpers: latest snapshot and day-to-day comparison.
Run: pytest tests/test_snapshot_queries.py -v
"""
from datetime import date
from decimal import Decimal

import pytest

from snapshot_engine.services import compare_snapshots, get_latest_snapshot, ingest_snapshot_batch


@pytest.mark.asyncio
async def test_get_latest_snapshot(session_factory, make_record) -> None:
    await ingest_snapshot_batch({"p1": make_record(earnings="1.00")}, date(2024, 3, 8), session_factory=session_factory)
    await ingest_snapshot_batch({"p1": make_record(earnings="0.50")}, date(2024, 3, 1), session_factory=session_factory)

    async with session_factory() as db:
        latest = await get_latest_snapshot(db, "p1")
        missing = await get_latest_snapshot(db, "nope")

    assert latest.snapshot_date == date(2024, 3, 8)
    assert latest.lifetime_earnings == Decimal("1.00")
    assert missing is None


@pytest.mark.asyncio
async def test_compare_snapshots(session_factory, make_record) -> None:
    day_1, day_2 = date(2024, 3, 1), date(2024, 3, 8)
    await ingest_snapshot_batch(
        {
            "slow": make_record(earnings="5.00", qualified_views=50, title="Slow"),
            "gone": make_record(earnings="2.00", qualified_views=20, title="Gone"),
        },
        day_1,
        session_factory=session_factory,
    )
    await ingest_snapshot_batch(
        {
            "slow": make_record(earnings="6.00", qualified_views=60, title="Slow"),
            "fresh": make_record(earnings="4.00", qualified_views=40, title="Fresh"),
        },
        day_2,
        session_factory=session_factory,
    )

    async with session_factory() as db:
        rows = await compare_snapshots(db, day_1, day_2)

    assert [r.item_id for r in rows] == ["fresh", "slow", "gone"]
    by_id = {r.item_id: r for r in rows}
    assert by_id["fresh"].from_values is None
    assert by_id["fresh"].delta.earnings == Decimal("4.00")
    assert by_id["slow"].title == "Slow"
    assert by_id["slow"].delta.qualified_views == 10
    assert by_id["gone"].to_values is None
    assert by_id["gone"].delta.earnings == Decimal("-2.00")
