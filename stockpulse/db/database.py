"""SQLite cycle history: one row per monitor cycle."""

import aiosqlite
import logging
from datetime import datetime
from typing import List

from stockpulse.api.schemas import CycleReport, CycleRunRecord

logger = logging.getLogger(__name__)


class RunHistory:
    def __init__(self, db_path: str):
        self.db_path = db_path

    async def get_db(self) -> aiosqlite.Connection:
        db = await aiosqlite.connect(self.db_path)
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA journal_mode=WAL")
        return db

    async def init(self):
        """Create the history table on startup if it doesn't exist."""
        db = await self.get_db()
        try:
            await db.executescript("""
                CREATE TABLE IF NOT EXISTS cycle_runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    started_at TEXT NOT NULL,
                    completed_at TEXT,
                    status TEXT NOT NULL,
                    succeeded_count INTEGER DEFAULT 0,
                    failed_count INTEGER DEFAULT 0,
                    alert_count INTEGER DEFAULT 0,
                    notified INTEGER DEFAULT 0,
                    error TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_runs_started ON cycle_runs(started_at);
            """)
            await db.commit()
        finally:
            await db.close()

    async def record(self, report: CycleReport):
        error = "; ".join(f"{k}: {v}" for k, v in report.failed.items()) or None
        await self._insert(
            report.started_at.isoformat(),
            report.completed_at.isoformat() if report.completed_at else None,
            report.status,
            len(report.succeeded),
            len(report.failed),
            len(report.alerts),
            report.notified,
            error,
        )

    async def record_failure(self, started_at: datetime, error: str):
        """Store a cycle that raised before producing a report."""
        await self._insert(
            started_at.isoformat(), datetime.now(started_at.tzinfo).isoformat(),
            "error", 0, 0, 0, False, error,
        )

    async def _insert(self, started_at, completed_at, status, succeeded, failed, alerts, notified, error):
        db = await self.get_db()
        try:
            await db.execute(
                """INSERT INTO cycle_runs (started_at, completed_at, status, succeeded_count,
                       failed_count, alert_count, notified, error)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (started_at, completed_at, status, succeeded, failed, alerts, int(notified), error),
            )
            await db.commit()
        finally:
            await db.close()

    async def recent(self, limit: int = 20) -> List[CycleRunRecord]:
        db = await self.get_db()
        try:
            cursor = await db.execute(
                """SELECT id, started_at, completed_at, status, succeeded_count,
                          failed_count, alert_count, notified, error
                   FROM cycle_runs ORDER BY id DESC LIMIT ?""",
                (limit,),
            )
            rows = await cursor.fetchall()
        finally:
            await db.close()

        return [
            CycleRunRecord(
                id=r["id"], started_at=r["started_at"], completed_at=r["completed_at"],
                status=r["status"], succeeded_count=r["succeeded_count"],
                failed_count=r["failed_count"], alert_count=r["alert_count"],
                notified=bool(r["notified"]), error=r["error"],
            )
            for r in rows
        ]
