from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import require_admin
from roster.errors import AppError, not_found
from roster.models import Agency, ShiftType, Task, TaskStatus, TaskType, User
from roster.schemas import ErrorCode, Principal, TaskIn, TaskOut, TaskStatusEnum

router = APIRouter(prefix="/api/admin/tasks", tags=["tasks"])


def task_out(task: Task) -> TaskOut:
    return TaskOut(
        id=task.id,
        inspectorId=task.inspector_id,
        shiftTypeId=task.shift_type_id,
        taskTypeId=task.task_type_id,
        status=TaskStatusEnum(task.status.value),
        date=task.task_date,
        assignedTo=task.assigned_to,
        isFollowupNeeded=task.is_followup_needed,
    )


async def _validate(session: AsyncSession, payload: TaskIn) -> None:
    if await session.get(ShiftType, payload.shiftTypeId) is None:
        raise AppError(ErrorCode.validation_error, "Invalid shift type.", f"Shift type {payload.shiftTypeId} not found.", 400)
    if await session.get(TaskType, payload.taskTypeId) is None:
        raise AppError(ErrorCode.validation_error, "Invalid task type.", f"Task type {payload.taskTypeId} not found.", 400)
    if payload.inspectorId is not None and await session.get(User, payload.inspectorId) is None:
        raise AppError(ErrorCode.validation_error, "Invalid inspector.", f"User {payload.inspectorId} not found.", 400)
    if payload.assignedTo is not None and await session.get(Agency, payload.assignedTo) is None:
        raise AppError(ErrorCode.validation_error, "Invalid agency assignment.", f"Agency {payload.assignedTo} not found.", 400)


@router.get("", response_model=list[TaskOut])
async def list_tasks(
    on: date | None = Query(default=None, alias="date"),
    status: TaskStatusEnum | None = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> list[TaskOut]:
    stmt = select(Task).order_by(Task.task_date.desc(), Task.created_at.desc())
    if on is not None:
        stmt = stmt.where(Task.task_date == on)
    if status is not None:
        stmt = stmt.where(Task.status == TaskStatus(status.value))
    result = await session.execute(stmt)
    return [task_out(t) for t in result.scalars().all()]


@router.post("", response_model=TaskOut, status_code=201)
async def create_task(
    payload: TaskIn,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(require_admin),
) -> TaskOut:
    await _validate(session, payload)
    task = Task(
        inspector_id=payload.inspectorId,
        shift_type_id=payload.shiftTypeId,
        task_type_id=payload.taskTypeId,
        status=TaskStatus(payload.status.value),
        task_date=payload.date,
        assigned_to=payload.assignedTo,
        is_followup_needed=payload.isFollowupNeeded,
        created_by=current_user.id,
    )
    session.add(task)
    await session.commit()
    return task_out(task)


@router.put("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: UUID,
    payload: TaskIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> TaskOut:
    task = await session.get(Task, task_id)
    if not task:
        raise not_found(ErrorCode.task_not_found, "Task", task_id)
    await _validate(session, payload)
    task.inspector_id = payload.inspectorId
    task.shift_type_id = payload.shiftTypeId
    task.task_type_id = payload.taskTypeId
    task.status = TaskStatus(payload.status.value)
    task.task_date = payload.date
    task.assigned_to = payload.assignedTo
    task.is_followup_needed = payload.isFollowupNeeded
    await session.commit()
    return task_out(task)


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    task = await session.get(Task, task_id)
    if not task:
        raise not_found(ErrorCode.task_not_found, "Task", task_id)
    await session.delete(task)
    await session.commit()
