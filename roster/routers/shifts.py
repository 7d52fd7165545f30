from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import get_current_user
from roster.schemas import (
    AssignmentStatusEnum,
    MyAssignmentOut,
    Principal,
    ShiftDetail,
    ShiftResponseIn,
    ShiftResponseOut,
)
from roster.services.response_service import ResponseService
from roster.services.schedule_service import ScheduleService

router = APIRouter(prefix="/api/shifts", tags=["shifts"])
schedule = ScheduleService()
responses = ResponseService()


@router.get("/mine", response_model=list[MyAssignmentOut])
async def list_my_assignments(
    status: AssignmentStatusEnum | None = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> list[MyAssignmentOut]:
    return await responses.list_mine(session, current_user, status)


@router.get("/{shift_id}", response_model=ShiftDetail)
async def get_shift(
    shift_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> ShiftDetail:
    return await schedule.get_shift(session, current_user, shift_id)


@router.post("/{shift_id}/inspectors/{inspector_id}/response", response_model=ShiftResponseOut)
async def respond_to_shift(
    shift_id: UUID,
    inspector_id: UUID,
    payload: ShiftResponseIn,
    request: Request,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> ShiftResponseOut:
    return await responses.respond(
        session,
        background,
        current_user,
        shift_id,
        inspector_id,
        payload,
        request.state.correlation_id,
    )
