"""Pydantic models shared by the monitor, the store and the status API."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict
from datetime import datetime


class CategoryDescriptor(BaseModel):
    """One monitored inventory segment, defined at startup."""
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    source: str = "listing_page"
    params: dict = {}
    list_top_items: bool = False


class CategorySnapshot(BaseModel):
    """Point-in-time observation returned by a source adapter."""
    model_config = ConfigDict(frozen=True)

    total_count: int = Field(ge=0)
    items: List[str] = []


class CategoryState(BaseModel):
    """Persisted result of the last successful acquisition for a category."""
    total_count: int = Field(ge=0)
    items: List[str] = []
    observed_at: datetime


class DiffResult(BaseModel):
    added: int = 0
    removed: int = 0
    new_items: List[str] = []


class ThresholdCrossing(BaseModel):
    """A rising-edge alert fired for one category."""
    key: str
    label: str
    previous_count: Optional[int] = None
    current_count: int
    threshold: int


class AlertDecision(BaseModel):
    crossings: List[ThresholdCrossing] = []
    send_routine: bool = True


class CycleReport(BaseModel):
    """Outcome of one monitor cycle."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    status: str = "running"  # running, completed, partial, failed
    succeeded: List[str] = []
    failed: Dict[str, str] = {}
    diffs: Dict[str, DiffResult] = {}
    alerts: List[ThresholdCrossing] = []
    notified: bool = False
    notification_errors: List[str] = []


class CycleRunRecord(BaseModel):
    """Row of the cycle history table."""
    id: int
    started_at: str
    completed_at: Optional[str] = None
    status: str
    succeeded_count: int = 0
    failed_count: int = 0
    alert_count: int = 0
    notified: bool = False
    error: Optional[str] = None


class TriggerResponse(BaseModel):
    accepted: bool


class StatusResponse(BaseModel):
    """Scheduler state plus the last cycle report."""
    state: str
    discipline: str
    interval_seconds: float
    skipped_triggers: int = 0
    last_report: Optional[CycleReport] = None
