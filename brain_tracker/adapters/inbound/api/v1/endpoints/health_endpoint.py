# brain_tracker/adapters/inbound/api/v1/endpoints/health_endpoint.py

from datetime import datetime, timezone
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from brain_tracker.adapters.configuration.config import settings
from brain_tracker.adapters.outbound.persistence.database import connection_manager

router = APIRouter()


@router.get(
    "",
    summary="Health - Liveness and database status",
    description="Returns 200 when the store is reachable, 503 otherwise.",
)
async def health():
    if settings.USE_MEMORY_STORE:
        database, healthy = "memory", True
    else:
        healthy = await connection_manager.check()
        database = "connected" if healthy else "unavailable"

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": settings.ENVIRONMENT,
            "services": {"database": database},
        },
    )
