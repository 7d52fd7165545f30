from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import require_admin
from roster.schemas import (
    DayUpdateIn,
    InspectorAvailabilityOut,
    InspectorGroupCreate,
    Principal,
    RosterAddIn,
    RosterEntry,
    ShiftCreate,
    ShiftDaySummary,
    ShiftOut,
    TaskAssignmentSummary,
)
from roster.services.availability_service import AvailabilityService
from roster.services.roster_service import RosterService

router = APIRouter(prefix="/api/admin", tags=["scheduling"])
availability = AvailabilityService()
service = RosterService()


@router.get("/shifts/inspectors/availability", response_model=list[InspectorAvailabilityOut])
async def inspector_availability(
    shift_type_id: UUID = Query(alias="shiftTypeId"),
    week: str = Query(),
    exclude_inspector_ids: list[UUID] = Query(default=[], alias="excludeInspectorIds"),
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> list[InspectorAvailabilityOut]:
    return await availability.list_availability(session, shift_type_id, week, exclude_inspector_ids)


@router.get("/shifts", response_model=list[ShiftOut])
async def list_shifts(
    building_id: UUID | None = Query(default=None, alias="buildingId"),
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> list[ShiftOut]:
    return await service.list_shifts(session, building_id)


@router.post("/shifts", response_model=ShiftOut, status_code=201)
async def create_shift(
    payload: ShiftCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(require_admin),
) -> ShiftOut:
    return await service.create_shift(session, current_user, payload)


@router.delete("/shifts/{shift_id}", status_code=204)
async def delete_shift(
    shift_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    await service.delete_shift(session, shift_id)


@router.post("/shifts/{shift_id}/inspector-groups", response_model=TaskAssignmentSummary, status_code=201)
async def create_inspector_group(
    shift_id: UUID,
    payload: InspectorGroupCreate,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> TaskAssignmentSummary:
    return await service.create_group(session, shift_id, payload)


@router.delete("/inspector-groups/{group_id}", status_code=204)
async def delete_inspector_group(
    group_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    await service.delete_group(session, group_id)


@router.put("/inspector-groups/{group_id}/days/{day_of_week}", response_model=ShiftDaySummary)
async def set_group_day(
    group_id: UUID,
    payload: DayUpdateIn,
    day_of_week: int = Path(ge=0, le=6),
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> ShiftDaySummary:
    return await service.set_day(session, group_id, day_of_week, payload.shiftTypeId)


@router.post("/inspector-groups/{group_id}/inspectors", response_model=RosterEntry, status_code=201)
async def add_inspector(
    group_id: UUID,
    payload: RosterAddIn,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(require_admin),
) -> RosterEntry:
    return await service.add_inspector(session, background, current_user, group_id, payload)


@router.delete("/inspector-groups/{group_id}/inspectors/{inspector_id}", status_code=204)
async def remove_inspector(
    group_id: UUID,
    inspector_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    await service.remove_inspector(session, group_id, inspector_id)
