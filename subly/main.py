"""
Subly - FastAPI application
Hosts the daily billing rollover and reminder sweeps.
"""
from contextlib import asynccontextmanager
import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subly.api.routes import health, jobs
from subly.config import settings
from subly.core.logger import configure_logging
from subly.database import init_db
from subly.services.jobs import build_scheduler

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    logger.info("Starting Subly API...")

    try:
        init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")

    scheduler = build_scheduler(settings)
    scheduler.start()
    app.state.job_scheduler = scheduler
    logger.info(f"API running on {settings.app_env} environment, jobs in {settings.timezone}")
    yield
    await scheduler.stop()
    logger.info("Shutting down Subly API...")


app = FastAPI(
    title=settings.app_name,
    description="Subscription tracker backend: billing rollover and reminders",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict:
    return {
        "name": settings.app_name,
        "environment": settings.app_env,
        "timestamp": datetime.utcnow().isoformat(),
    }


app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(jobs.router, prefix="/api/v1/jobs", tags=["Jobs"])
