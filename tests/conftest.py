"""
Shared fixtures: a fresh SQLite database (aiosqlite) per test, schema from the models.

SQLite needs two tweaks to behave like the production store: foreign keys on, and
BEGIN emitted by SQLAlchemy so SAVEPOINTs nest inside the item transaction.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import snapshot_engine.models  # noqa: F401  (register tables)
from snapshot_engine.db import Base


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'snapshots.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    yield factory
    await engine.dispose()


def _make_record(
    earnings: Any = "0",
    qualified_views: int = 0,
    seconds_viewed: int = 0,
    snapshot_date: Optional[date] = None,
    title: Optional[str] = "Untitled",
    content_type: Optional[str] = "Video",
    publish_time: Optional[datetime] = datetime(2024, 1, 1, tzinfo=timezone.utc),
    **extra: Any,
) -> Dict[str, Any]:
    """Plain-dict normalized record with a single snapshot point."""
    record: Dict[str, Any] = {
        "title": title,
        "content_type": content_type,
        "publish_time": publish_time,
        "snapshots": [
            {
                "date": snapshot_date,
                "earnings": earnings,
                "qualified_views": qualified_views,
                "seconds_viewed": seconds_viewed,
                "engagement": {"reactions": 1, "comments": 2, "shares": 3},
            }
        ],
    }
    record.update(extra)
    return record


@pytest.fixture
def make_record():
    return _make_record
