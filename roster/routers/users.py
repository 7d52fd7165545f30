from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import require_admin
from roster.errors import AppError, not_found
from roster.models import Building, ShiftInspector, User
from roster.schemas import ErrorCode, Principal, UserCreate, UserOut, UserRoleFilter, UserUpdate

router = APIRouter(prefix="/api/admin/users", tags=["users"])


def user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        fullName=user.full_name,
        isAdmin=user.is_admin,
        isManager=user.is_manager,
        isInspector=user.is_inspector,
    )


async def _ensure_username_free(session: AsyncSession, username: str, user_id: UUID | None = None) -> None:
    stmt = select(User).where(User.username == username)
    if user_id is not None:
        stmt = stmt.where(User.id != user_id)
    if await session.scalar(stmt):
        raise AppError(
            ErrorCode.duplicate,
            "Another user already has this username.",
            f"Duplicate username: {username}",
            409,
        )


@router.get("", response_model=list[UserOut])
async def list_users(
    role: UserRoleFilter | None = Query(default=None),
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> list[UserOut]:
    stmt = select(User).order_by(User.full_name)
    if role == UserRoleFilter.admin:
        stmt = stmt.where(User.is_admin.is_(True))
    elif role == UserRoleFilter.manager:
        stmt = stmt.where(User.is_manager.is_(True))
    elif role == UserRoleFilter.inspector:
        stmt = stmt.where(User.is_inspector.is_(True))
    elif role == UserRoleFilter.employee:
        stmt = stmt.where(User.is_admin.is_(False), User.is_manager.is_(False))
    result = await session.execute(stmt)
    return [user_out(u) for u in result.scalars().all()]


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> UserOut:
    user = await session.get(User, user_id)
    if not user:
        raise not_found(ErrorCode.user_not_found, "User", user_id)
    return user_out(user)


@router.post("", response_model=UserOut, status_code=201)
async def create_user(
    payload: UserCreate,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> UserOut:
    await _ensure_username_free(session, payload.username)
    user = User(
        username=payload.username,
        full_name=payload.fullName,
        is_admin=payload.isAdmin,
        is_manager=payload.isManager,
        is_inspector=payload.isInspector,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user_out(user)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: UUID,
    payload: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
    _: Principal = Depends(require_admin),
) -> UserOut:
    user = await session.get(User, user_id)
    if not user:
        raise not_found(ErrorCode.user_not_found, "User", user_id)
    if payload.username is not None:
        await _ensure_username_free(session, payload.username, user_id)
        user.username = payload.username
    if payload.fullName is not None:
        user.full_name = payload.fullName
    if payload.isAdmin is not None:
        user.is_admin = payload.isAdmin
    if payload.isManager is not None:
        user.is_manager = payload.isManager
    if payload.isInspector is not None:
        user.is_inspector = payload.isInspector
    await session.commit()
    await session.refresh(user)
    return user_out(user)


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(require_admin),
) -> None:
    if user_id == current_user.id:
        raise AppError(ErrorCode.in_use, "You cannot delete your own account.", f"Self-delete by {user_id}", 409)
    user = await session.get(User, user_id)
    if not user:
        raise not_found(ErrorCode.user_not_found, "User", user_id)
    referenced = await session.scalar(
        select(ShiftInspector.id).where(ShiftInspector.inspector_id == user_id).limit(1)
    ) or await session.scalar(
        select(Building.id).where(Building.supervisor_id == user_id).limit(1)
    )
    if referenced:
        raise AppError(
            ErrorCode.in_use,
            "This user still has shift assignments or supervises a building.",
            f"User {user_id} is referenced by roster entries or buildings.",
            409,
        )
    await session.delete(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise AppError(
            ErrorCode.in_use,
            "This user is still referenced by other records.",
            f"Delete of user {user_id} failed: {exc.orig}",
            409,
        ) from exc
