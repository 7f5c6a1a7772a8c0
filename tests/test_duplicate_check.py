"""
Duplicate-upload advisory and the re-date fix-up.
- a day matching on more than 90% of shared items is flagged; exactly 90% is not.
- the proposed day itself never counts as a duplicate.
- the fingerprint ignores batch order.
Run: pytest tests/test_duplicate_check.py -v
"""
import hashlib
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from snapshot_engine.models import Snapshot
from snapshot_engine.services import check_duplicate, compute_fingerprint, ingest_snapshot_batch, redate_snapshots
from snapshot_engine.store import MetricStore

STORED_DAY = date(2024, 3, 1)
NEXT_DAY = date(2024, 3, 8)


def _batch(make_record, n, changed=0):
    """n items; the last `changed` of them carry values not on file."""
    batch = {}
    for i in range(n):
        views = 100 + i
        if i >= n - changed:
            views += 1
        batch[f"p{i}"] = make_record(earnings=f"{i}.50", qualified_views=views, seconds_viewed=10, title=f"t{i}")
    return batch


async def _store(session_factory, batch, day=STORED_DAY):
    result = await ingest_snapshot_batch(batch, day, session_factory=session_factory)
    assert result.errors == []


async def _snapshot_count(session_factory):
    async with session_factory() as db:
        return (await db.execute(select(func.count(Snapshot.id)))).scalar_one()


@pytest.mark.asyncio
async def test_identical_upload_under_new_date_is_duplicate(session_factory, make_record) -> None:
    batch = _batch(make_record, 5)
    await _store(session_factory, batch)

    async with session_factory() as db:
        result = await check_duplicate(db, batch, NEXT_DAY)

    assert result.is_duplicate is True
    assert result.existing_date == STORED_DAY
    assert result.proposed_date == NEXT_DAY
    assert result.match_score_percent == 100
    assert result.fingerprint == compute_fingerprint(batch, NEXT_DAY)
    assert await _snapshot_count(session_factory) == 5


@pytest.mark.asyncio
async def test_eighty_percent_match_is_not_duplicate(session_factory, make_record) -> None:
    await _store(session_factory, _batch(make_record, 5))

    async with session_factory() as db:
        result = await check_duplicate(db, _batch(make_record, 5, changed=1), NEXT_DAY)

    assert result.is_duplicate is False
    assert result.existing_date is None


@pytest.mark.asyncio
async def test_threshold_is_exclusive(session_factory, make_record) -> None:
    """9 of 10 matching is 90%: not above the threshold."""
    await _store(session_factory, _batch(make_record, 10))

    async with session_factory() as db:
        result = await check_duplicate(db, _batch(make_record, 10, changed=1), NEXT_DAY)

    assert result.is_duplicate is False


@pytest.mark.asyncio
async def test_same_date_is_not_duplicate(session_factory, make_record) -> None:
    batch = _batch(make_record, 3)
    await _store(session_factory, batch)

    async with session_factory() as db:
        result = await check_duplicate(db, batch, STORED_DAY)

    assert result.is_duplicate is False


@pytest.mark.asyncio
async def test_earnings_within_a_cent_match(session_factory, make_record) -> None:
    await _store(session_factory, {"p1": make_record(earnings="10.00", qualified_views=5)})

    async with session_factory() as db:
        near = await check_duplicate(db, {"p1": make_record(earnings="10.005", qualified_views=5)}, NEXT_DAY)
        far = await check_duplicate(db, {"p1": make_record(earnings="10.02", qualified_views=5)}, NEXT_DAY)

    assert near.is_duplicate is True
    assert far.is_duplicate is False


@pytest.mark.asyncio
async def test_tolerance_applies_to_uploaded_earnings(session_factory, make_record) -> None:
    """10.006 is within a cent of 10.00; the uploaded value is compared unrounded."""
    await _store(session_factory, {"p1": make_record(earnings="10.00", qualified_views=5)})

    async with session_factory() as db:
        result = await check_duplicate(db, {"p1": make_record(earnings="10.006", qualified_views=5)}, NEXT_DAY)

    assert result.is_duplicate is True
    assert result.match_score_percent == 100


@pytest.mark.asyncio
async def test_most_recent_day_wins_on_tie(session_factory, make_record) -> None:
    batch = {"p1": make_record(earnings="2.00", qualified_views=7)}
    await _store(session_factory, batch, date(2024, 2, 1))
    await _store(session_factory, batch, date(2024, 2, 15))

    async with session_factory() as db:
        result = await check_duplicate(db, batch, NEXT_DAY)

    assert result.existing_date == date(2024, 2, 15)


@pytest.mark.asyncio
async def test_empty_batch(session_factory) -> None:
    async with session_factory() as db:
        result = await check_duplicate(db, {}, NEXT_DAY)

    assert result.is_duplicate is False
    assert result.match_score_percent is None
    assert result.fingerprint == hashlib.sha256(b"").hexdigest()


def test_fingerprint_is_order_independent(make_record) -> None:
    a = make_record(earnings="12.30", qualified_views=500, seconds_viewed=60)
    b = make_record(earnings="5.5", qualified_views=10, seconds_viewed=20)

    expected = hashlib.sha256(b"P1|12.3|500|60\nP2|5.5|10|20").hexdigest()
    assert compute_fingerprint({"P1": a, "P2": b}, NEXT_DAY) == expected
    assert compute_fingerprint({"P2": b, "P1": a}, NEXT_DAY) == expected


def test_fingerprint_keeps_sub_cent_earnings(make_record) -> None:
    record = make_record(earnings="12.345", qualified_views=1, seconds_viewed=2)

    expected = hashlib.sha256(b"P1|12.345|1|2").hexdigest()
    assert compute_fingerprint({"P1": record}, NEXT_DAY) == expected


@pytest.mark.asyncio
async def test_fingerprint_and_match_use_same_point(session_factory) -> None:
    """An undated point stands for the proposed day, so it is the latest one in both places."""
    record = {
        "title": "mixed",
        "snapshots": [
            {"date": date(2024, 2, 1), "earnings": "1.00", "qualified_views": 1},
            {"earnings": "2.00", "qualified_views": 2},
        ],
    }
    await _store(session_factory, {"P1": {"title": "mixed", "snapshots": [{"earnings": "2.00", "qualified_views": 2}]}})

    async with session_factory() as db:
        result = await check_duplicate(db, {"P1": record}, NEXT_DAY)

    assert result.is_duplicate is True
    assert result.fingerprint == hashlib.sha256(b"P1|2|2|0").hexdigest()
    assert result.fingerprint == compute_fingerprint({"P1": record}, NEXT_DAY)


@pytest.mark.asyncio
async def test_redate_snapshots(session_factory, make_record) -> None:
    batch = _batch(make_record, 3)
    await _store(session_factory, batch)

    async with session_factory() as db:
        result = await redate_snapshots(db, ["p0", "p1"], STORED_DAY, NEXT_DAY)
        await db.commit()

    assert result.updated == 2
    async with session_factory() as db:
        store = MetricStore(db)
        assert await store.get_snapshot("p0", NEXT_DAY) is not None
        assert await store.get_snapshot("p0", STORED_DAY) is None
        assert await store.get_snapshot("p2", STORED_DAY) is not None
        moved = await store.get_snapshot("p1", NEXT_DAY)
    assert moved.lifetime_earnings == Decimal("1.50")


@pytest.mark.asyncio
async def test_redate_same_day_rejected(session_factory) -> None:
    async with session_factory() as db:
        with pytest.raises(ValueError):
            await redate_snapshots(db, ["p0"], STORED_DAY, STORED_DAY)
