from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import get_current_user, require_admin
from roster.errors import AppError, not_found
from roster.models import Building, Shift, User
from roster.schemas import (
    BuildingIn,
    BuildingOut,
    BuildingSummary,
    BuildingsWithShiftsResponse,
    ErrorCode,
    Principal,
)
from roster.services.schedule_service import ScheduleService, user_ref

router = APIRouter(prefix="/api", tags=["buildings"])
schedule = ScheduleService()


async def _building_out(session: AsyncSession, building: Building) -> BuildingOut:
    supervisor = await session.get(User, building.supervisor_id) if building.supervisor_id else None
    return BuildingOut(
        id=building.id,
        name=building.name,
        code=building.code,
        area=building.area,
        supervisor=user_ref(supervisor),
    )


async def _validate(session: AsyncSession, payload: BuildingIn, building_id: UUID | None = None) -> None:
    supervisor = await session.get(User, payload.supervisorId)
    if supervisor is None or not (supervisor.is_admin or supervisor.is_manager):
        raise AppError(
            ErrorCode.validation_error,
            "Supervisor must be an admin or manager.",
            f"User {payload.supervisorId} missing or not admin/manager.",
            400,
        )
    stmt = select(Building).where(Building.code == payload.code)
    if building_id is not None:
        stmt = stmt.where(Building.id != building_id)
    if await session.scalar(stmt):
        raise AppError(
            ErrorCode.duplicate,
            "Another building already uses this code.",
            f"Duplicate building code: {payload.code}",
            409,
        )


@router.get("/buildings/with-shifts", response_model=BuildingsWithShiftsResponse)
async def buildings_with_shifts(
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> BuildingsWithShiftsResponse:
    return await schedule.list_buildings_with_shifts(session, current_user)


@router.get("/buildings/{building_id}", response_model=BuildingSummary)
async def get_building(
    building_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> BuildingSummary:
    return await schedule.get_building(session, current_user, building_id)


@router.get("/admin/buildings", response_model=list[BuildingOut])
async def list_buildings(
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> list[BuildingOut]:
    result = await session.execute(select(Building).order_by(Building.name))
    return [await _building_out(session, b) for b in result.scalars().all()]


@router.post("/admin/buildings", response_model=BuildingOut, status_code=201)
async def create_building(
    payload: BuildingIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> BuildingOut:
    await _validate(session, payload)
    building = Building(
        name=payload.name,
        code=payload.code,
        area=payload.area,
        supervisor_id=payload.supervisorId,
    )
    session.add(building)
    await session.commit()
    await session.refresh(building)
    return await _building_out(session, building)


@router.put("/admin/buildings/{building_id}", response_model=BuildingOut)
async def update_building(
    building_id: UUID,
    payload: BuildingIn,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> BuildingOut:
    building = await session.get(Building, building_id)
    if not building:
        raise not_found(ErrorCode.building_not_found, "Building", building_id)
    await _validate(session, payload, building_id)
    building.name = payload.name
    building.code = payload.code
    building.area = payload.area
    building.supervisor_id = payload.supervisorId
    await session.commit()
    await session.refresh(building)
    return await _building_out(session, building)


@router.delete("/admin/buildings/{building_id}", status_code=204)
async def delete_building(
    building_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> None:
    building = await session.get(Building, building_id)
    if not building:
        raise not_found(ErrorCode.building_not_found, "Building", building_id)
    if await session.scalar(select(Shift.id).where(Shift.building_id == building_id).limit(1)):
        raise AppError(
            ErrorCode.in_use,
            "Remove this building's shifts before deleting it.",
            f"Building {building_id} still has shifts.",
            409,
        )
    await session.delete(building)
    await session.commit()
