from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SweepReportSchema(BaseModel):
    name: str
    scanned: int
    eligible: int
    succeeded: int
    failed: int
    error: Optional[str] = None


class JobStatusSchema(BaseModel):
    name: str
    cron: str
    running: bool
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    last_result: Optional[SweepReportSchema] = None
    last_error: Optional[str] = None


class JobListSchema(BaseModel):
    timezone: str
    scheduler_running: bool
    jobs: list[JobStatusSchema]
