"""
Snapshot ingestion: upload batches (or platform syncs) into content items + snapshots.

Each item runs in its own session and transaction, so a bad row only costs that row.
Deltas are not computed here; run recompute_deltas afterwards (ingest_and_recompute
does both) so deltas reflect the whole store, not just this batch.
"""
import asyncio
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from snapshot_engine.config import get_settings
from snapshot_engine.db import async_session_factory
from snapshot_engine.logging_config import get_logger
from snapshot_engine.models import ContentItem
from snapshot_engine.models.snapshot import EARNINGS_APPROXIMATE, EARNINGS_ESTIMATED
from snapshot_engine.schemas.delta import DeltaOut
from snapshot_engine.schemas.ingest import (
    IngestError,
    IngestResult,
    NormalizedRecord,
    RecordInput,
    SnapshotPoint,
    coerce_record,
)
from snapshot_engine.schemas.lineage import LineageAssignment, LineageCandidate
from snapshot_engine.services.delta_service import recompute_deltas
from snapshot_engine.services.lineage_service import link_lineage
from snapshot_engine.store import MetricStore
from snapshot_engine.utils.dates import DateLike, as_day, as_timestamp
from snapshot_engine.utils.locks import KeyedLock

logger = get_logger(__name__)

CENT = Decimal("0.01")

# One writer per item id across every batch running in this process.
_item_locks = KeyedLock()


@dataclass
class _ItemOutcome:
    item_created: bool
    snapshot_created: Optional[bool]  # None: record had no snapshot points


def _error_message(exc: Exception) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return f"{type(exc).__name__}: {exc.orig}"
    if isinstance(exc, ValidationError):
        return f"invalid record: {exc.error_count()} validation error(s): {exc.errors()[0]['msg']}"
    return str(exc) or type(exc).__name__


def _item_values(record: NormalizedRecord, assignment: LineageAssignment) -> Dict[str, Any]:
    return {
        "asset_tag": record.asset_tag,
        "title": record.title,
        "description": record.description,
        "content_type": record.content_type.value if record.content_type else None,
        "publish_time": record.publish_time,
        "duration": record.duration,
        "permalink": record.permalink,
        "page_id": record.page_id,
        "page_name": record.page_name,
        "iteration_number": assignment.iteration_number,
        "original_item_id": assignment.original_item_id,
        "previous_iteration_id": assignment.previous_iteration_id,
        "owner_id": record.owner_id or assignment.owner_id,
        "lifetime_views": record.views or 0,
        "views_source": record.views_source,
    }


def _merge_known_item(item: ContentItem, record: NormalizedRecord) -> bool:
    """Fill gaps and keep lifetime_views monotonic. Returns True if anything changed."""
    changed = False
    if record.asset_tag and not item.asset_tag:
        item.asset_tag = record.asset_tag
        changed = True
    if record.views and (not item.lifetime_views or record.views > item.lifetime_views):
        item.lifetime_views = record.views
        item.views_source = record.views_source
        changed = True
    return changed


def _snapshot_fields(record: NormalizedRecord, point: SnapshotPoint) -> Dict[str, Any]:
    earnings_column = None
    if point.earnings:
        earnings_column = EARNINGS_APPROXIMATE if record.approximate_earnings else EARNINGS_ESTIMATED
    return {
        "lifetime_earnings": point.earnings.quantize(CENT, rounding=ROUND_HALF_UP),
        "lifetime_qualified_views": point.qualified_views,
        "lifetime_seconds_viewed": point.seconds_viewed,
        "three_second_views": record.three_second_views or 0,
        "one_minute_views": record.one_minute_views or 0,
        "views": record.views or 0,
        "views_source": record.views_source,
        "reactions": point.engagement.reactions,
        "comments": point.engagement.comments,
        "shares": point.engagement.shares,
        "avg_seconds_viewed": record.avg_seconds_viewed or 0,
        "earnings_column": earnings_column,
        "quarter_range": record.quarter_range,
        "data_source": record.data_source,
        "raw_data": record.model_dump(mode="json"),
    }


async def _ingest_record(
    store: MetricStore,
    item_id: str,
    record: NormalizedRecord,
    upload_date: DateLike,
    manual_sources: Set[str],
) -> _ItemOutcome:
    item = await store.get_item(item_id)
    created = False
    if item is None:
        if record.has_lineage_identity:
            assignment = await link_lineage(
                store,
                LineageCandidate(
                    title=record.title,
                    content_type=record.content_type.value,
                    publish_time=record.publish_time,
                    owner_id=record.owner_id,
                ),
            )
        else:
            logger.info("snapshot_ingest.lineage_skipped", item_id=item_id, reason="incomplete_identity")
            assignment = LineageAssignment(owner_id=record.owner_id)
        item, created = await store.upsert_item(item_id, _item_values(record, assignment))

    if created:
        await store.upsert_iteration_record(
            item_id,
            {
                "original_item_id": item.original_item_id or item_id,
                "iteration_number": item.iteration_number,
                "upload_date": record.publish_time or as_timestamp(upload_date),
                "removal_date": None,
                "reason": None,
            },
        )
    elif _merge_known_item(item, record):
        logger.debug(
            "snapshot_ingest.item_merged",
            item_id=item_id,
            lifetime_views=item.lifetime_views,
            asset_tag=item.asset_tag,
        )

    upload_day = as_day(upload_date)
    point = record.latest_snapshot(upload_day)
    if point is None:
        await store.db.flush()
        return _ItemOutcome(item_created=created, snapshot_created=None)

    overwrite = record.data_source.lower() not in manual_sources
    _, snapshot_created = await store.upsert_snapshot(
        item_id,
        point.date or upload_day,
        _snapshot_fields(record, point),
        overwrite=overwrite,
    )
    return _ItemOutcome(item_created=created, snapshot_created=snapshot_created)


async def _ingest_one(
    session_factory: async_sessionmaker[AsyncSession],
    item_id: str,
    raw: RecordInput,
    upload_date: DateLike,
    manual_sources: Set[str],
) -> Union[_ItemOutcome, IngestError]:
    try:
        record = coerce_record(raw)
        async with session_factory() as db:
            try:
                outcome = await _ingest_record(MetricStore(db), item_id, record, upload_date, manual_sources)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return outcome
    except DBAPIError as e:
        if e.connection_invalidated:
            raise
        error = IngestError(item_id=item_id, error=_error_message(e))
    except Exception as e:
        error = IngestError(item_id=item_id, error=_error_message(e))
    logger.warning("snapshot_ingest.item_failed", item_id=item_id, error=error.error)
    return error


async def ingest_snapshot_batch(
    batch: Mapping[str, RecordInput],
    upload_date: DateLike,
    *,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    concurrency: Optional[int] = None,
) -> IngestResult:
    """
    Ingest a batch keyed by item id. Per-item failures land in result.errors; only a
    store that cannot be reached at all (checked before any item) raises.
    """
    settings = get_settings()
    session_factory = session_factory or async_session_factory
    limit = concurrency or settings.ingest_concurrency
    manual_sources = set(settings.manual_data_source_set)

    async with session_factory() as db:
        await MetricStore(db).ping()

    async def run(item_id: str, raw: RecordInput) -> Union[_ItemOutcome, IngestError]:
        async with _item_locks.hold(item_id):
            return await _ingest_one(session_factory, item_id, raw, upload_date, manual_sources)

    pairs: List[Tuple[str, RecordInput]] = list(batch.items())
    if limit <= 1:
        outcomes = [await run(item_id, raw) for item_id, raw in pairs]
    else:
        semaphore = asyncio.Semaphore(limit)

        async def bounded(item_id: str, raw: RecordInput) -> Union[_ItemOutcome, IngestError]:
            async with semaphore:
                return await run(item_id, raw)

        # A propagating failure cancels the items still running, so none commits unreported.
        try:
            async with asyncio.TaskGroup() as tg:
                tasks = [tg.create_task(bounded(item_id, raw)) for item_id, raw in pairs]
        except ExceptionGroup as eg:
            raise eg.exceptions[0]
        outcomes = [task.result() for task in tasks]

    result = IngestResult()
    for outcome in outcomes:
        if isinstance(outcome, IngestError):
            result.errors.append(outcome)
            continue
        if outcome.item_created:
            result.created_items += 1
            result.new_item_count += 1
        else:
            result.updated_items += 1
        if outcome.snapshot_created is True:
            result.created_snapshots += 1
        elif outcome.snapshot_created is False:
            result.updated_snapshots += 1

    logger.info(
        "snapshot_ingest.batch_done",
        items=len(pairs),
        created_items=result.created_items,
        updated_items=result.updated_items,
        created_snapshots=result.created_snapshots,
        updated_snapshots=result.updated_snapshots,
        errors=len(result.errors),
        upload_date=as_day(upload_date).isoformat(),
    )
    return result


async def ingest_and_recompute(
    batch: Mapping[str, RecordInput],
    upload_date: DateLike,
    *,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    concurrency: Optional[int] = None,
) -> Tuple[IngestResult, List[DeltaOut]]:
    """Ingest, then run a full delta pass over the store."""
    session_factory = session_factory or async_session_factory
    result = await ingest_snapshot_batch(
        batch,
        upload_date,
        session_factory=session_factory,
        concurrency=concurrency,
    )
    async with session_factory() as db:
        deltas = await recompute_deltas(db)
    return result, deltas
