"""Tests for the SQLite cycle history."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio

from stockpulse.api.schemas import CycleReport, ThresholdCrossing
from stockpulse.db.database import RunHistory

STARTED = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def history(tmp_path):
    h = RunHistory(str(tmp_path / "history.db"))
    await h.init()
    return h


@pytest.mark.asyncio
async def test_empty_history(history):
    assert await history.recent() == []


@pytest.mark.asyncio
async def test_record_report(history):
    report = CycleReport(
        started_at=STARTED,
        completed_at=STARTED.replace(second=20),
        status="completed",
        succeeded=["A", "B"],
        alerts=[ThresholdCrossing(key="A", label="A", previous_count=1, current_count=40, threshold=30)],
        notified=True,
    )
    await history.record(report)

    rows = await history.recent()
    assert len(rows) == 1
    row = rows[0]
    assert row.status == "completed"
    assert row.started_at == STARTED.isoformat()
    assert (row.succeeded_count, row.failed_count, row.alert_count) == (2, 0, 1)
    assert row.notified is True
    assert row.error is None


@pytest.mark.asyncio
async def test_record_failure_and_ordering(history):
    await history.record(CycleReport(started_at=STARTED, status="failed", failed={"A": "timeout"}))
    await history.record_failure(STARTED, "PersistenceError: disk full")

    rows = await history.recent(limit=5)
    assert [r.status for r in rows] == ["error", "failed"]
    assert rows[0].error == "PersistenceError: disk full"
    assert rows[1].error == "A: timeout"


@pytest.mark.asyncio
async def test_init_is_idempotent(history):
    await history.init()
    await history.record_failure(STARTED, "x")
    assert len(await history.recent()) == 1
