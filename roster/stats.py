from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.models import (
    AssignmentStatus,
    Building,
    RequestStatus,
    ShiftInspector,
    ShiftType,
    StaffRequest,
    Task,
    TaskStatus,
    User,
)
from roster.schemas import StatsOut, TaskStatsRow


def _count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


async def get_stats(session: AsyncSession) -> StatsOut:
    inspectors = await session.scalar(select(func.count(User.id)).where(User.is_inspector.is_(True)))
    buildings = await session.scalar(select(func.count(Building.id)))
    pending_responses = await session.scalar(
        select(func.count(ShiftInspector.id)).where(ShiftInspector.status == AssignmentStatus.pending)
    )
    pending_requests = await session.scalar(
        select(func.count(StaffRequest.id)).where(StaffRequest.status == RequestStatus.pending)
    )

    rows = await session.execute(
        select(
            ShiftType.id,
            ShiftType.name,
            func.count(Task.id),
            _count_where(Task.status == TaskStatus.pending),
            _count_where(Task.status == TaskStatus.in_progress),
            _count_where(Task.status == TaskStatus.completed),
        )
        .join(Task, Task.shift_type_id == ShiftType.id)
        .group_by(ShiftType.id, ShiftType.name)
        .order_by(ShiftType.name)
    )
    by_type = [
        TaskStatsRow(
            shiftTypeId=type_id,
            shiftTypeName=name,
            total=int(total or 0),
            pending=int(pending or 0),
            inProgress=int(in_progress or 0),
            completed=int(completed or 0),
        )
        for type_id, name, total, pending, in_progress, completed in rows.all()
    ]
    return StatsOut(
        totalInspectors=int(inspectors or 0),
        totalBuildings=int(buildings or 0),
        pendingResponses=int(pending_responses or 0),
        pendingRequests=int(pending_requests or 0),
        tasksByShiftType=by_type,
    )
