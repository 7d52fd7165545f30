from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import get_current_user, require_admin
from roster.schemas import Principal, RequestAssignIn, RequestCreate, RequestOut, RequestReviewIn
from roster.services.request_service import RequestService

router = APIRouter(prefix="/api", tags=["requests"])
service = RequestService()


@router.post("/requests", response_model=RequestOut, status_code=201)
async def create_request(
    payload: RequestCreate,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> RequestOut:
    return await service.create(session, current_user, payload)


@router.get("/requests", response_model=list[RequestOut])
async def list_requests(
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> list[RequestOut]:
    return await service.list_for(session, current_user)


@router.post("/admin/requests/{request_id}/assign", response_model=RequestOut)
async def assign_manager(
    request_id: UUID,
    payload: RequestAssignIn,
    request: Request,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> RequestOut:
    return await service.assign_manager(
        session, background, request_id, payload.managerId, request.state.correlation_id
    )


@router.put("/admin/requests/{request_id}", response_model=RequestOut)
async def review_request(
    request_id: UUID,
    payload: RequestReviewIn,
    request: Request,
    background: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> RequestOut:
    return await service.review(
        session, background, current_user, request_id, payload.status, request.state.correlation_id
    )
