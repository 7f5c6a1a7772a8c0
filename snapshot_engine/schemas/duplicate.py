"""Duplicate-upload advisory schemas."""
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class DuplicateCheckResult(BaseModel):
    """Advisory only; callers decide whether to block or warn."""

    is_duplicate: bool
    existing_date: Optional[date] = None
    proposed_date: date
    match_score_percent: Optional[int] = Field(None, ge=0, le=100)
    fingerprint: str = Field(..., description="SHA-256 hex of the canonicalized batch")


class RedateResult(BaseModel):
    """Outcome of moving snapshots from one day to another."""

    old_date: date
    new_date: date
    updated: int
