from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.errors import AppError
from roster.models import User
from roster.schemas import ErrorCode, Principal


def principal_from_user(user: User) -> Principal:
    return Principal(
        id=user.id,
        username=user.username,
        fullName=user.full_name,
        isAdmin=user.is_admin,
        isManager=user.is_manager,
        isInspector=user.is_inspector,
    )


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> Principal:
    if not x_user_id:
        raise AppError(
            ErrorCode.auth_required,
            "Authentication is required for this operation.",
            "Missing X-User-Id header.",
            401,
        )
    try:
        user_id = UUID(x_user_id)
    except ValueError as exc:
        raise AppError(
            ErrorCode.auth_required,
            "Invalid authentication token.",
            f"Invalid X-User-Id header: {x_user_id}",
            401,
        ) from exc

    user = await session.get(User, user_id)
    if not user:
        raise AppError(
            ErrorCode.auth_required,
            "User for this session no longer exists.",
            f"User {user_id} not found for current principal.",
            401,
        )
    return principal_from_user(user)


async def require_admin(current_user: Principal = Depends(get_current_user)) -> Principal:
    if not current_user.isAdmin:
        raise AppError(
            ErrorCode.forbidden,
            "You do not have permission to perform this action.",
            f"User {current_user.id} is not an admin.",
            403,
        )
    return current_user
