"""
Health Check Router - Folio Pipeline Engine
folio/routers/health.py

Returns health status of the run store, the cache and the job queue with
real connection checks.
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, Optional

import redis
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from folio.config import settings
from folio.core.dependencies import get_job_queue
from folio.pipelines.queue import RedisJobQueue
from folio.services.snowflake import get_snowflake_connection

router = APIRouter(tags=["Health"])


#  Schemas


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    dependencies: Dict[str, str]
    queue: Optional[Dict[str, int]] = None


def _short(e: Exception) -> str:
    msg = str(e)
    return msg[:100] + "..." if len(msg) > 100 else msg


#  Dependency Health Checks


def _snowflake_ping() -> str:
    conn = get_snowflake_connection()
    try:
        cursor = conn.cursor()
        cursor.execute("SELECT CURRENT_USER()")
        row = cursor.fetchone()
        cursor.close()
        return row[0]
    finally:
        conn.close()


async def check_snowflake() -> str:
    """Check Snowflake connection health."""
    try:
        user = await asyncio.to_thread(_snowflake_ping)
        return f"healthy (User: {user})"
    except Exception as e:
        return f"unhealthy: {_short(e)}"


async def check_redis() -> str:
    """Check the cache Redis connection health."""
    try:
        client = redis.from_url(settings.REDIS_URL, decode_responses=True, socket_connect_timeout=5)
        await asyncio.to_thread(client.ping)
        client.close()
        return "healthy"
    except Exception as e:
        return f"unhealthy: {_short(e)}"


async def check_queue(queue: RedisJobQueue) -> tuple:
    """Check the queue Redis and report its depth."""
    try:
        await queue.ping()
        return "healthy", await queue.depth()
    except Exception as e:
        return f"unhealthy: {_short(e)}", None


#  Main Health Check Route


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Health check",
)
async def health_check(queue: RedisJobQueue = Depends(get_job_queue)):
    queue_status, depth = await check_queue(queue)
    dependencies = {
        "snowflake": await check_snowflake(),
        "redis": await check_redis(),
        "queue": queue_status,
    }

    all_healthy = all(v.startswith("healthy") for v in dependencies.values())
    response = HealthResponse(
        status="healthy" if all_healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=settings.APP_VERSION,
        dependencies=dependencies,
        queue=depth,
    )

    if all_healthy:
        return response
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json"),
    )
