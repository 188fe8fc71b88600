"""
Health API Routes
"""
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from subly.config import settings
from subly.database import database_health

router = APIRouter()


@router.get("/health")
async def health_check() -> JSONResponse:
    """Application and database health"""
    db = database_health()
    ok = bool(db.get("ok"))
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if ok else "degraded",
            "message": "Subly API is running",
            "database": db,
        },
    )


@router.get("/version")
async def version() -> dict:
    return {"version": settings.app_version}
