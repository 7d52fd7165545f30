import time

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session, redis_client
from roster.schemas import HealthStatus

router = APIRouter(prefix="/health", tags=["health"])


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


@router.get("", response_model=HealthStatus)
async def health() -> HealthStatus:
    return HealthStatus(status="ok")


@router.get("/db", response_model=HealthStatus)
async def health_db(session: AsyncSession = Depends(get_db_session)) -> HealthStatus:
    start = time.perf_counter()
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        return HealthStatus(status="fail", latency_ms=_elapsed_ms(start), last_error=str(exc))
    return HealthStatus(status="ok", latency_ms=_elapsed_ms(start))


@router.get("/cache", response_model=HealthStatus)
async def health_cache() -> HealthStatus:
    start = time.perf_counter()
    try:
        await redis_client.ping()
    except (RedisError, OSError) as exc:
        return HealthStatus(status="fail", latency_ms=_elapsed_ms(start), last_error=str(exc))
    return HealthStatus(status="ok", latency_ms=_elapsed_ms(start))
