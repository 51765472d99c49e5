"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from medbook import __version__
from medbook.core.database import get_db, ping

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Basic health check."""
    return {
        "status": "healthy",
        "service": "medbook",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Readiness check - verifies the database answers."""
    try:
        await ping(db)
    except SQLAlchemyError as e:
        logger.warning(f"Database check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "errors": [f"Database check failed: {e}"]},
        )
    return {"status": "ready", "database": "ok"}


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check - basic process health."""
    return {"status": "alive"}
