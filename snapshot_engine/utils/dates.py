"""Day truncation helpers. Snapshots are keyed by calendar day."""
from datetime import date, datetime, time, timezone
from typing import Union

DateLike = Union[date, datetime]


def as_day(value: DateLike) -> date:
    """datetime -> its date (in its own timezone); date -> unchanged."""
    if isinstance(value, datetime):
        return value.date()
    return value


def as_timestamp(value: DateLike) -> datetime:
    """date -> midnight UTC; datetime -> unchanged."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min, tzinfo=timezone.utc)
