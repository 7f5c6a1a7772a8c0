"""Snapshot ingestion and versioning engine for published content metrics."""
