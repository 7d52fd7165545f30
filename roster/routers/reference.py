"""Reference data.

Roles, shift types and task types are readable by any signed-in user; agencies
and every write are admin only.
"""
import re
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import get_current_user, require_admin
from roster.errors import AppError, not_found
from roster.models import Agency, Role, ShiftDay, ShiftType, StaffRequest, Task, TaskAssignment, TaskType
from roster.schemas import (
    AgencyIn,
    AgencyOut,
    ErrorCode,
    Principal,
    RoleIn,
    RoleOut,
    ShiftTypeIn,
    ShiftTypeOut,
    TaskTypeIn,
    TaskTypeOut,
)

router = APIRouter(prefix="/api", tags=["reference"])


def _label(model) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", " ", model.__name__).lower()


async def _ensure_name_free(session: AsyncSession, model, name: str, ident: UUID | None = None) -> None:
    stmt = select(model.id).where(model.name == name)
    if ident is not None:
        stmt = stmt.where(model.id != ident)
    if await session.scalar(stmt):
        raise AppError(
            ErrorCode.duplicate,
            f"Another {_label(model)} is already named '{name}'.",
            f"Duplicate {model.__name__}.name: {name}",
            409,
        )


def _in_use(what: str, ident: UUID) -> AppError:
    return AppError(ErrorCode.in_use, f"This {what} is still in use.", f"{what} {ident} is referenced.", 409)


def _role_out(role: Role) -> RoleOut:
    return RoleOut(id=role.id, name=role.name, description=role.description)


def _shift_type_out(shift_type: ShiftType) -> ShiftTypeOut:
    return ShiftTypeOut(
        id=shift_type.id,
        name=shift_type.name,
        startTime=shift_type.start_time,
        endTime=shift_type.end_time,
        description=shift_type.description,
    )


def _task_type_out(task_type: TaskType) -> TaskTypeOut:
    return TaskTypeOut(id=task_type.id, name=task_type.name, description=task_type.description)


# --- Roles ---

@router.get("/roles", response_model=list[RoleOut])
async def list_roles(
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(get_current_user),
) -> list[RoleOut]:
    result = await session.execute(select(Role).order_by(Role.name))
    return [_role_out(r) for r in result.scalars().all()]


@router.post("/admin/roles", response_model=RoleOut, status_code=201)
async def create_role(
    payload: RoleIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> RoleOut:
    await _ensure_name_free(session, Role, payload.name)
    role = Role(name=payload.name, description=payload.description)
    session.add(role)
    await session.commit()
    return _role_out(role)


@router.put("/admin/roles/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: UUID,
    payload: RoleIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> RoleOut:
    role = await session.get(Role, role_id)
    if not role:
        raise not_found(ErrorCode.role_not_found, "Role", role_id)
    await _ensure_name_free(session, Role, payload.name, role_id)
    role.name = payload.name
    role.description = payload.description
    await session.commit()
    return _role_out(role)


@router.delete("/admin/roles/{role_id}", status_code=204)
async def delete_role(
    role_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    role = await session.get(Role, role_id)
    if not role:
        raise not_found(ErrorCode.role_not_found, "Role", role_id)
    if await session.scalar(select(TaskAssignment.id).where(TaskAssignment.role_id == role_id).limit(1)):
        raise _in_use("role", role_id)
    await session.delete(role)
    await session.commit()


# --- Shift types ---

@router.get("/shift-types", response_model=list[ShiftTypeOut])
async def list_shift_types(
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(get_current_user),
) -> list[ShiftTypeOut]:
    result = await session.execute(select(ShiftType).order_by(ShiftType.start_time, ShiftType.name))
    return [_shift_type_out(t) for t in result.scalars().all()]


@router.post("/admin/shift-types", response_model=ShiftTypeOut, status_code=201)
async def create_shift_type(
    payload: ShiftTypeIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> ShiftTypeOut:
    await _ensure_name_free(session, ShiftType, payload.name)
    shift_type = ShiftType(
        name=payload.name,
        start_time=payload.startTime,
        end_time=payload.endTime,
        description=payload.description,
    )
    session.add(shift_type)
    await session.commit()
    return _shift_type_out(shift_type)


@router.put("/admin/shift-types/{shift_type_id}", response_model=ShiftTypeOut)
async def update_shift_type(
    shift_type_id: UUID,
    payload: ShiftTypeIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> ShiftTypeOut:
    shift_type = await session.get(ShiftType, shift_type_id)
    if not shift_type:
        raise not_found(ErrorCode.shift_type_not_found, "Shift type", shift_type_id)
    await _ensure_name_free(session, ShiftType, payload.name, shift_type_id)
    shift_type.name = payload.name
    shift_type.start_time = payload.startTime
    shift_type.end_time = payload.endTime
    shift_type.description = payload.description
    await session.commit()
    return _shift_type_out(shift_type)


@router.delete("/admin/shift-types/{shift_type_id}", status_code=204)
async def delete_shift_type(
    shift_type_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    shift_type = await session.get(ShiftType, shift_type_id)
    if not shift_type:
        raise not_found(ErrorCode.shift_type_not_found, "Shift type", shift_type_id)
    used = (
        await session.scalar(select(ShiftDay.id).where(ShiftDay.shift_type_id == shift_type_id).limit(1))
        or await session.scalar(select(Task.id).where(Task.shift_type_id == shift_type_id).limit(1))
        or await session.scalar(
            select(StaffRequest.id)
            .where(
                or_(
                    StaffRequest.shift_type_id == shift_type_id,
                    StaffRequest.target_shift_type_id == shift_type_id,
                )
            )
            .limit(1)
        )
    )
    if used:
        raise _in_use("shift type", shift_type_id)
    await session.delete(shift_type)
    await session.commit()


# --- Task types ---

@router.get("/task-types", response_model=list[TaskTypeOut])
async def list_task_types(
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(get_current_user),
) -> list[TaskTypeOut]:
    result = await session.execute(select(TaskType).order_by(TaskType.name))
    return [_task_type_out(t) for t in result.scalars().all()]


@router.post("/admin/task-types", response_model=TaskTypeOut, status_code=201)
async def create_task_type(
    payload: TaskTypeIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> TaskTypeOut:
    await _ensure_name_free(session, TaskType, payload.name)
    task_type = TaskType(name=payload.name, description=payload.description)
    session.add(task_type)
    await session.commit()
    return _task_type_out(task_type)


@router.put("/admin/task-types/{task_type_id}", response_model=TaskTypeOut)
async def update_task_type(
    task_type_id: UUID,
    payload: TaskTypeIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> TaskTypeOut:
    task_type = await session.get(TaskType, task_type_id)
    if not task_type:
        raise not_found(ErrorCode.task_type_not_found, "Task type", task_type_id)
    await _ensure_name_free(session, TaskType, payload.name, task_type_id)
    task_type.name = payload.name
    task_type.description = payload.description
    await session.commit()
    return _task_type_out(task_type)


@router.delete("/admin/task-types/{task_type_id}", status_code=204)
async def delete_task_type(
    task_type_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    task_type = await session.get(TaskType, task_type_id)
    if not task_type:
        raise not_found(ErrorCode.task_type_not_found, "Task type", task_type_id)
    if await session.scalar(select(Task.id).where(Task.task_type_id == task_type_id).limit(1)):
        raise _in_use("task type", task_type_id)
    await session.delete(task_type)
    await session.commit()


# --- Agencies ---

def _agency_out(agency: Agency) -> AgencyOut:
    return AgencyOut(id=agency.id, name=agency.name, description=agency.description)


@router.get("/admin/agencies", response_model=list[AgencyOut])
async def list_agencies(
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> list[AgencyOut]:
    result = await session.execute(select(Agency).order_by(Agency.name))
    return [_agency_out(a) for a in result.scalars().all()]


@router.post("/admin/agencies", response_model=AgencyOut, status_code=201)
async def create_agency(
    payload: AgencyIn,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(require_admin),
) -> AgencyOut:
    await _ensure_name_free(session, Agency, payload.name)
    agency = Agency(name=payload.name, description=payload.description, created_by=current_user.id)
    session.add(agency)
    await session.commit()
    return _agency_out(agency)


@router.put("/admin/agencies/{agency_id}", response_model=AgencyOut)
async def update_agency(
    agency_id: UUID,
    payload: AgencyIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> AgencyOut:
    agency = await session.get(Agency, agency_id)
    if not agency:
        raise not_found(ErrorCode.agency_not_found, "Agency", agency_id)
    await _ensure_name_free(session, Agency, payload.name, agency_id)
    agency.name = payload.name
    agency.description = payload.description
    await session.commit()
    return _agency_out(agency)


@router.delete("/admin/agencies/{agency_id}", status_code=204)
async def delete_agency(
    agency_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    agency = await session.get(Agency, agency_id)
    if not agency:
        raise not_found(ErrorCode.agency_not_found, "Agency", agency_id)
    if await session.scalar(select(Task.id).where(Task.assigned_to == agency_id).limit(1)):
        raise _in_use("agency", agency_id)
    await session.delete(agency)
    await session.commit()
