"""Business logic services."""
from snapshot_engine.services.delta_service import recompute_deltas
from snapshot_engine.services.duplicate_check_service import check_duplicate, compute_fingerprint, redate_snapshots
from snapshot_engine.services.lineage_service import (
    ItemNotFoundError,
    get_iteration_history,
    link_lineage,
    link_to_previous,
    mark_removed,
    restore_items,
)
from snapshot_engine.services.snapshot_ingest_service import ingest_and_recompute, ingest_snapshot_batch
from snapshot_engine.services.snapshot_query_service import compare_snapshots, get_latest_snapshot

__all__ = [
    "ItemNotFoundError",
    "check_duplicate",
    "compare_snapshots",
    "compute_fingerprint",
    "get_iteration_history",
    "get_latest_snapshot",
    "ingest_and_recompute",
    "ingest_snapshot_batch",
    "link_lineage",
    "link_to_previous",
    "mark_removed",
    "recompute_deltas",
    "redate_snapshots",
    "restore_items",
]
