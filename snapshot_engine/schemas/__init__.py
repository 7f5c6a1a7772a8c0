"""Pydantic schemas for ingest input, results and advisory reports."""
