from snapshot_engine.store.metric_store import ItemSnapshots, MetricStore

__all__ = ["ItemSnapshots", "MetricStore"]
