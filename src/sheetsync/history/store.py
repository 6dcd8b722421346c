"""SQLite-based run history."""

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import aiosqlite

from ..config import settings
from .models import RunRecord

if TYPE_CHECKING:
    from ..sync.models import SyncResult


class RunHistoryStore:
    """Persistent record of synchronization runs and their per-row results."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or settings.database_path
        self._connection: Optional[aiosqlite.Connection] = None

    async def initialize(self):
        """Initialize the database and create tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(str(self.db_path))

        await self._connection.executescript(
            """
            CREATE TABLE IF NOT EXISTS runs (
                id TEXT PRIMARY KEY,
                source TEXT NOT NULL,
                started_at TEXT NOT NULL,
                finished_at TEXT NOT NULL,
                succeeded INTEGER NOT NULL DEFAULT 0,
                failed INTEGER NOT NULL DEFAULT 0,
                results TEXT NOT NULL,
                error TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_runs_started_at ON runs(started_at);
            """
        )
        await self._connection.commit()

    async def close(self):
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def record_run(
        self,
        source: str,
        started_at: datetime,
        results: list["SyncResult"],
        error: Optional[str] = None,
    ) -> RunRecord:
        """Store the outcome of a run."""
        failed = sum(1 for r in results if r.status == "FAILURE")
        run = RunRecord(
            id=str(uuid.uuid4()),
            source=source,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            succeeded=len(results) - failed,
            failed=failed,
            results=[r.to_output() for r in results],
            error=error,
        )

        await self._connection.execute(
            """
            INSERT INTO runs
            (id, source, started_at, finished_at, succeeded, failed, results, error)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                run.id,
                run.source,
                run.started_at.isoformat(),
                run.finished_at.isoformat(),
                run.succeeded,
                run.failed,
                json.dumps(run.results, default=str),
                run.error,
            ),
        )
        await self._connection.commit()
        return run

    async def get_run(self, run_id: str) -> Optional[RunRecord]:
        """Get a run by ID."""
        async with self._connection.execute(
            "SELECT * FROM runs WHERE id = ?", (run_id,)
        ) as cursor:
            row = await cursor.fetchone()
            if row:
                return self._row_to_run(row)
        return None

    async def list_runs(self, limit: int = 20) -> list[RunRecord]:
        """Most recent runs first."""
        async with self._connection.execute(
            "SELECT * FROM runs ORDER BY started_at DESC LIMIT ?", (limit,)
        ) as cursor:
            rows = await cursor.fetchall()
            return [self._row_to_run(row) for row in rows]

    def _row_to_run(self, row) -> RunRecord:
        return RunRecord(
            id=row[0],
            source=row[1],
            started_at=datetime.fromisoformat(row[2]),
            finished_at=datetime.fromisoformat(row[3]),
            succeeded=row[4],
            failed=row[5],
            results=json.loads(row[6]),
            error=row[7],
        )
