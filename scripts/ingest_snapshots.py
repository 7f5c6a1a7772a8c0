"""
Ingest a normalized snapshot batch from a JSON file, then recompute deltas.

The file is the column mapper's output: an object keyed by item id, each value a
normalized record ({"title", "content_type", "publish_time", "snapshots": [...], ...}).

Run (DATABASE_URL must point at a migrated database):
  python scripts/ingest_snapshots.py <batch.json> <snapshot_date YYYY-MM-DD>
  FORCE=1 python scripts/ingest_snapshots.py ...   # ingest even if flagged as duplicate

Exit code 2 when the batch looks like data already stored under another date.
"""
import asyncio
import json
import os
import sys
from datetime import date

from snapshot_engine.db import async_session_factory, engine
from snapshot_engine.logging_config import configure_logging, get_logger
from snapshot_engine.services import check_duplicate, ingest_and_recompute

logger = get_logger("scripts.ingest_snapshots")


async def run(path: str, snapshot_date: date, force: bool) -> int:
    with open(path, encoding="utf-8") as fh:
        batch = json.load(fh)
    if not isinstance(batch, dict):
        raise SystemExit("Batch file must be a JSON object keyed by item id")

    async with async_session_factory() as db:
        check = await check_duplicate(db, batch, snapshot_date)
    print(json.dumps({"duplicate_check": check.model_dump(mode="json")}, indent=2))
    if check.is_duplicate and not force:
        print(
            f"Data matches snapshots already stored for {check.existing_date} "
            f"({check.match_score_percent}%). Set FORCE=1 to ingest anyway."
        )
        return 2

    result, deltas = await ingest_and_recompute(batch, snapshot_date)
    print(
        json.dumps(
            {
                "ingest": result.model_dump(mode="json"),
                "deltas_total": len(deltas),
                "deltas_created": sum(1 for d in deltas if d.created),
            },
            indent=2,
        )
    )
    return 1 if result.errors else 0


def main() -> None:
    if len(sys.argv) < 3:
        print("Usage: python scripts/ingest_snapshots.py <batch.json> <snapshot_date YYYY-MM-DD>")
        sys.exit(1)
    configure_logging()
    try:
        snapshot_date = date.fromisoformat(sys.argv[2])
    except ValueError:
        raise SystemExit(f"Invalid snapshot date: {sys.argv[2]}")
    force = os.environ.get("FORCE", "").lower() in ("1", "true", "yes")

    async def _main() -> int:
        try:
            return await run(sys.argv[1], snapshot_date, force)
        finally:
            await engine.dispose()

    code = asyncio.run(_main())
    logger.info("scripts.ingest_snapshots.done", exit_code=code)
    sys.exit(code)


if __name__ == "__main__":
    main()
