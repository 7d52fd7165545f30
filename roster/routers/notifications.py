from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import get_db_session
from roster.deps import get_current_user
from roster.errors import not_found
from roster.models import Notification
from roster.schemas import ErrorCode, NotificationOut, Principal

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


def notification_out(notification: Notification) -> NotificationOut:
    return NotificationOut(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        isRead=notification.is_read,
        metadata=notification.meta or {},
        createdAt=notification.created_at,
    )


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> list[NotificationOut]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == current_user.id)
        .order_by(Notification.created_at.desc())
    )
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    result = await session.execute(stmt)
    return [notification_out(n) for n in result.scalars().all()]


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: UUID,
    session: AsyncSession = Depends(get_db_session),
    current_user: Principal = Depends(get_current_user),
) -> NotificationOut:
    notification = await session.get(Notification, notification_id)
    # Someone else's notification looks the same as a missing one.
    if notification is None or notification.user_id != current_user.id:
        raise not_found(ErrorCode.notification_not_found, "Notification", notification_id)
    notification.is_read = True
    await session.commit()
    return notification_out(notification)
