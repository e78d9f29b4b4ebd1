"""API routes for StockPulse.

Keep-alive and status endpoints, cycle history, and a manual trigger that
goes through the scheduler's single-flight guard.
"""

import logging
from typing import List
from fastapi import APIRouter, HTTPException, Query, Request

from stockpulse.api.schemas import CycleRunRecord, StatusResponse, TriggerResponse

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.get("/api/status", response_model=StatusResponse)
async def status(request: Request):
    scheduler = request.app.state.scheduler
    return StatusResponse(
        state=scheduler.state.value,
        discipline=scheduler.discipline.value,
        interval_seconds=scheduler.interval,
        skipped_triggers=scheduler.skipped,
        last_report=scheduler.last_result,
    )


@router.get("/api/runs", response_model=List[CycleRunRecord])
async def runs(request: Request, limit: int = Query(20, ge=1, le=200)):
    history = request.app.state.monitor.history
    if history is None:
        return []
    return await history.recent(limit)


@router.post("/api/run", response_model=TriggerResponse)
async def trigger_run(request: Request):
    """Start a cycle now; 409 if one is already running."""
    scheduler = request.app.state.scheduler
    if not scheduler.trigger_background():
        raise HTTPException(status_code=409, detail=f"Scheduler is {scheduler.state.value}")
    logger.info("Manual cycle triggered")
    return TriggerResponse(accepted=True)
