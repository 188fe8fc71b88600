"""
Background job status.
"""
from fastapi import APIRouter, Request

from subly.config import settings
from subly.schemas.jobs import JobListSchema

router = APIRouter()


@router.get("/", response_model=JobListSchema)
async def list_jobs(request: Request) -> JobListSchema:
    """Schedule and last outcome of each daily sweep."""
    scheduler = getattr(request.app.state, "job_scheduler", None)
    if scheduler is None:
        return JobListSchema(timezone=settings.timezone, scheduler_running=False, jobs=[])
    return JobListSchema(
        timezone=settings.timezone,
        scheduler_running=scheduler.is_running,
        jobs=scheduler.status(),
    )
