from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import require_admin
from roster.schemas import Principal, StatsOut
from roster.stats import get_stats

router = APIRouter(prefix="/api/admin", tags=["stats"])


@router.get("/stats", response_model=StatsOut)
async def stats_endpoint(
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> StatsOut:
    return await get_stats(session)
