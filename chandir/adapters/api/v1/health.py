import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel

from chandir.core.config.settings import settings
from chandir.infrastructure.database import check_database_health
from chandir.infrastructure.redis import check_redis_health

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    env: str
    services: Dict[str, Any]
    timestamp: datetime


async def _database_status(container) -> Dict[str, Any]:
    healthy = await check_database_health(container.engine)
    return {"status": "healthy" if healthy else "unhealthy"}


@router.get("", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Reports database and Redis status. Redis being down degrades the service
    (cache misses, rate limits open) but does not make it unhealthy.
    """
    container = getattr(request.app.state, "container", None)
    if container is None:
        return HealthResponse(
            status="starting",
            env=settings.APP_ENV,
            services={},
            timestamp=datetime.now(timezone.utc),
        )

    db_health, redis_health = await asyncio.gather(
        _database_status(container),
        check_redis_health(container.redis),
    )
    if db_health["status"] != "healthy":
        overall = "unhealthy"
    elif redis_health["status"] != "healthy":
        overall = "degraded"
    else:
        overall = "ok"

    return HealthResponse(
        status=overall,
        env=settings.APP_ENV,
        services={"database": db_health, "redis": redis_health},
        timestamp=datetime.now(timezone.utc),
    )
