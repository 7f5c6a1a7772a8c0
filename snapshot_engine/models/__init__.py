"""SQLAlchemy models for the snapshot engine."""
from snapshot_engine.models.owner import Owner
from snapshot_engine.models.content_item import ContentItem
from snapshot_engine.models.snapshot import Snapshot
from snapshot_engine.models.delta import Delta
from snapshot_engine.models.iteration_record import IterationRecord

__all__ = [
    "Owner",
    "ContentItem",
    "Snapshot",
    "Delta",
    "IterationRecord",
]
