from fastapi import APIRouter, Depends, HTTPException
import logging

from passshare.dependencies import Backends, get_backends

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health/live")
async def liveness():
    """Liveness probe: Service is running."""
    return {"status": "ok", "checks": {"api": "ok"}}


@router.get("/health/ready")
async def readiness(backends: Backends = Depends(get_backends)):
    """Readiness probe: Store connected."""
    health = {"status": "ok", "checks": {}}

    try:
        await backends.secrets.ping()
        health["checks"]["store"] = "ok"
    except Exception as e:
        logger.error(f"Health check failed (store): {type(e).__name__}")
        health["checks"]["store"] = "failed"
        health["status"] = "failed"

    if health["status"] == "failed":
        raise HTTPException(status_code=503, detail=health)

    return health
