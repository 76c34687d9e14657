"""System health endpoints."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from database import ping, DatabaseError
from ..deps import get_pool

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["System"])

@router.get("/health")
async def health():
    """Liveness probe: the process is up."""
    return {"status": "healthy"}

@router.get("/ready")
async def ready(pool=Depends(get_pool)):
    """Readiness probe: the database answers a trivial query."""
    try:
        await ping(pool)
    except DatabaseError as e:
        logger.warning(f"Readiness check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "not ready", "error": str(e)}
        )
    return {"status": "ready"}
