import json
import logging
from uuid import UUID

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.config import get_settings
from roster.db import redis_client
from roster.errors import AppError, not_found
from roster.models import Shift, ShiftInspector, ShiftType, TaskAssignment, User
from roster.schemas import ErrorCode, InspectorAvailabilityOut
from roster.time_utils import normalize_week

logger = logging.getLogger(__name__)

CONFLICT_REASON = "Has conflicting shift this week"
SELECTED_REASON = "Already selected as primary"


def _generation_key(week: str) -> str:
    return f"availability:{week}:gen"


def _cache_key(week: str, generation: int) -> str:
    return f"availability:{week}:{generation}"


def parse_week_or_400(week: str) -> str:
    try:
        return normalize_week(week)
    except ValueError as exc:
        raise AppError(ErrorCode.validation_error, "Week must look like YYYY-WW.", str(exc), 400) from exc


class AvailabilityService:
    """Week-level conflict detection.

    An inspector on any roster (any group, any status) of any building in a
    week counts as committed for that whole week, whatever the shift type.
    """

    async def committed_inspector_ids(
        self,
        session: AsyncSession,
        week: str,
        exclude_group_id: UUID | None = None,
    ) -> set[UUID]:
        # Read the generation before the SELECT; a roster change committed
        # meanwhile bumps it, so this result lands under a key no one reads.
        generation = None if exclude_group_id else await self._generation(week)
        if generation is not None:
            cached = await self._cache_get(week, generation)
            if cached is not None:
                return cached

        stmt = (
            select(ShiftInspector.inspector_id)
            .join(TaskAssignment, TaskAssignment.inspector_group_id == ShiftInspector.inspector_group_id)
            .join(Shift, Shift.id == TaskAssignment.shift_id)
            .where(Shift.week == week)
        )
        if exclude_group_id is not None:
            stmt = stmt.where(ShiftInspector.inspector_group_id != exclude_group_id)
        result = await session.execute(stmt.distinct())
        committed = set(result.scalars().all())

        if generation is not None:
            await self._cache_set(week, generation, committed)
        return committed

    async def invalidate(self, *weeks: str) -> None:
        for week in set(weeks):
            try:
                await redis_client.incr(_generation_key(week))
            except RedisError as exc:
                logger.warning("availability_cache_invalidate_failed", extra={"week": week, "error": str(exc)})

    async def _generation(self, week: str) -> int | None:
        try:
            value = await redis_client.get(_generation_key(week))
        except RedisError as exc:
            logger.warning("availability_cache_unavailable", extra={"week": week, "error": str(exc)})
            return None
        return int(value or 0)

    async def _cache_get(self, week: str, generation: int) -> set[UUID] | None:
        try:
            cached = await redis_client.get(_cache_key(week, generation))
        except RedisError as exc:
            logger.warning("availability_cache_unavailable", extra={"week": week, "error": str(exc)})
            return None
        return None if cached is None else {UUID(v) for v in json.loads(cached)}

    async def _cache_set(self, week: str, generation: int, committed: set[UUID]) -> None:
        try:
            await redis_client.set(
                _cache_key(week, generation),
                json.dumps(sorted(str(i) for i in committed)),
                ex=get_settings().availability_cache_seconds,
            )
        except RedisError as exc:
            logger.warning("availability_cache_unavailable", extra={"week": week, "error": str(exc)})

    async def list_availability(
        self,
        session: AsyncSession,
        shift_type_id: UUID,
        week: str,
        exclude_inspector_ids: list[UUID] | None = None,
    ) -> list[InspectorAvailabilityOut]:
        week = parse_week_or_400(week)
        if await session.get(ShiftType, shift_type_id) is None:
            raise not_found(ErrorCode.shift_type_not_found, "Shift type", shift_type_id)

        committed = await self.committed_inspector_ids(session, week)
        selected = set(exclude_inspector_ids or [])

        result = await session.execute(
            select(User).where(User.is_inspector.is_(True)).order_by(User.full_name)
        )
        out: list[InspectorAvailabilityOut] = []
        for inspector in result.scalars().all():
            reason = None
            if inspector.id in committed:
                reason = CONFLICT_REASON
            elif inspector.id in selected:
                reason = SELECTED_REASON
            out.append(
                InspectorAvailabilityOut(
                    id=inspector.id,
                    username=inspector.username,
                    fullName=inspector.full_name,
                    isAvailable=reason is None,
                    reason=reason,
                )
            )
        logger.info(
            "availability_computed",
            extra={"week": week, "inspectors": len(out), "committed": len(committed)},
        )
        return out

    async def ensure_available(
        self,
        session: AsyncSession,
        inspector_id: UUID,
        week: str,
        group_id: UUID,
    ) -> None:
        """Refuse a roster addition that would double-book an inspector in the week."""
        if not get_settings().enforce_weekly_exclusivity:
            return
        committed = await self.committed_inspector_ids(session, week, exclude_group_id=group_id)
        if inspector_id in committed:
            raise AppError(
                ErrorCode.rule_conflict,
                "This inspector already has a shift in that week.",
                f"Inspector {inspector_id} is already rostered in week {week}.",
                409,
            )
