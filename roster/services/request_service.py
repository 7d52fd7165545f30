import logging
from datetime import UTC, datetime
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import and_, case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from roster.errors import AppError, not_found
from roster.models import AuditLog, RequestStatus, RequestType, ShiftType, StaffRequest, User
from roster.schemas import (
    ErrorCode,
    Principal,
    RequestCreate,
    RequestOut,
    RequestStatusEnum,
    RequestTypeEnum,
    ReviewDecisionEnum,
)
from roster.services.notification_service import NotificationService
from roster.services.schedule_service import shift_type_ref, user_ref

logger = logging.getLogger(__name__)


class RequestService:
    def __init__(self) -> None:
        self.notifications = NotificationService()

    async def create(
        self,
        session: AsyncSession,
        principal: Principal,
        payload: RequestCreate,
    ) -> RequestOut:
        if principal.isAdmin:
            raise AppError(
                ErrorCode.forbidden,
                "Admins cannot submit swap or leave requests.",
                f"Admin {principal.id} attempted to create a request.",
                403,
            )
        if payload.type == RequestTypeEnum.shift_swap:
            ids = {payload.shiftTypeId, payload.targetShiftTypeId}
            found = await session.execute(select(ShiftType.id).where(ShiftType.id.in_(ids)))
            if len(set(found.scalars().all())) != len(ids):
                raise AppError(
                    ErrorCode.validation_error,
                    "Invalid shift type.",
                    f"Unknown shift type in swap request: {sorted(str(i) for i in ids)}",
                    400,
                )

        request = StaffRequest(
            requester_id=principal.id,
            type=RequestType(payload.type.value),
            status=RequestStatus.pending,
            reason=(payload.reason or "").strip() or None,
        )
        if payload.type == RequestTypeEnum.shift_swap:
            request.shift_type_id = payload.shiftTypeId
            request.target_shift_type_id = payload.targetShiftTypeId
        else:
            request.start_date = payload.startDate
            request.end_date = payload.endDate
        session.add(request)
        await session.flush()
        session.add(
            AuditLog(
                action="request.created",
                meta={"request_id": str(request.id), "type": request.type.value, "requester_id": str(principal.id)},
            )
        )
        await session.commit()
        await session.refresh(request)
        (out,) = await self._to_out(session, [request])
        return out

    async def list_for(self, session: AsyncSession, principal: Principal) -> list[RequestOut]:
        """Admins see every request, managers what is assigned to them, anyone else their own."""
        stmt = select(StaffRequest).order_by(
            case((StaffRequest.status == RequestStatus.pending, 0), else_=1),
            StaffRequest.created_at.desc(),
        )
        if not principal.isAdmin:
            if principal.isManager:
                stmt = stmt.where(StaffRequest.manager_id == principal.id)
            else:
                stmt = stmt.where(StaffRequest.requester_id == principal.id)
        rows = await session.execute(stmt)
        return await self._to_out(session, list(rows.scalars().all()))

    async def assign_manager(
        self,
        session: AsyncSession,
        background: BackgroundTasks,
        request_id: UUID,
        manager_id: UUID,
        correlation_id: str,
    ) -> RequestOut:
        request = await session.get(StaffRequest, request_id)
        if request is None:
            raise not_found(ErrorCode.request_not_found, "Request", request_id)
        manager = await session.get(User, manager_id)
        if manager is None or not manager.is_manager:
            raise AppError(
                ErrorCode.validation_error,
                "Selected user is not a manager.",
                f"User {manager_id} missing or not flagged is_manager.",
                400,
            )
        if request.status != RequestStatus.pending:
            raise AppError(
                ErrorCode.request_not_pending,
                "This request is no longer pending.",
                f"Request {request_id} is {request.status.value}; cannot reassign.",
                409,
            )
        request.manager_id = manager.id
        self.notifications.add(
            session,
            manager.id,
            "REQUEST_ASSIGNED",
            "Request Assigned",
            f"A {request.type.value.replace('_', ' ').lower()} request was assigned to you for review",
            {"requestId": str(request_id)},
        )
        self.notifications.email(
            background, manager, "Request Assigned", "A request was assigned to you for review. Please log in."
        )
        session.add(
            AuditLog(
                action="request.manager_assigned",
                meta={"request_id": str(request_id), "manager_id": str(manager.id), "correlation_id": correlation_id},
            )
        )
        await session.commit()
        (out,) = await self._to_out(session, [request])
        return out

    async def review(
        self,
        session: AsyncSession,
        background: BackgroundTasks,
        principal: Principal,
        request_id: UUID,
        decision: ReviewDecisionEnum,
        correlation_id: str,
    ) -> RequestOut:
        request = await session.get(StaffRequest, request_id)
        if request is None:
            raise not_found(ErrorCode.request_not_found, "Request", request_id)
        if request.requester_id == principal.id:
            raise AppError(
                ErrorCode.forbidden,
                "You cannot review your own request.",
                f"User {principal.id} is the requester of {request_id}.",
                403,
            )
        if not principal.isAdmin and request.manager_id != principal.id:
            raise AppError(
                ErrorCode.forbidden,
                "Only an admin or the assigned manager can review this request.",
                f"User {principal.id} is not assigned to request {request_id}.",
                403,
            )

        status = RequestStatus(decision.value)
        reviewed_at = datetime.now(UTC)
        await self._update_status_if_pending(
            session, request_id, status, reviewer_id=principal.id, reviewed_at=reviewed_at
        )
        request.status = status
        request.reviewer_id = principal.id
        request.reviewed_at = reviewed_at

        verb = "approved" if status == RequestStatus.approved else "rejected"
        requester = await session.get(User, request.requester_id)
        if requester is not None:
            message = f"Your {request.type.value.replace('_', ' ').lower()} request was {verb}"
            self.notifications.add(
                session,
                requester.id,
                f"REQUEST_{status.value}",
                f"Request {verb.capitalize()}",
                message,
                {"requestId": str(request_id)},
            )
            self.notifications.email(background, requester, f"Request {verb.capitalize()}", f"{message}.")
        session.add(
            AuditLog(
                action=f"request.{verb}",
                meta={"request_id": str(request_id), "reviewer_id": str(principal.id), "correlation_id": correlation_id},
            )
        )
        await session.commit()
        logger.info("request_reviewed", extra={"request_id": str(request_id), "status": status.value})
        (out,) = await self._to_out(session, [request])
        return out

    async def _update_status_if_pending(
        self, session: AsyncSession, request_id: UUID, status: RequestStatus, **values
    ) -> StaffRequest:
        stmt = (
            update(StaffRequest)
            .where(and_(StaffRequest.id == request_id, StaffRequest.status == RequestStatus.pending))
            .values(status=status, **values)
            .returning(StaffRequest)
        )
        result = await session.execute(stmt)
        request = result.scalars().first()
        if request is None:
            raise AppError(
                ErrorCode.request_not_pending,
                "This request is no longer pending.",
                f"Request {request_id} is already acted on or missing.",
                409,
            )
        return request

    async def _to_out(self, session: AsyncSession, requests: list[StaffRequest]) -> list[RequestOut]:
        if not requests:
            return []
        user_ids = {
            uid for r in requests for uid in (r.requester_id, r.manager_id, r.reviewer_id) if uid is not None
        }
        type_ids = {
            tid for r in requests for tid in (r.shift_type_id, r.target_shift_type_id) if tid is not None
        }
        users = {u.id: u for u in (await session.execute(select(User).where(User.id.in_(user_ids)))).scalars()}
        types: dict[UUID, ShiftType] = {}
        if type_ids:
            types = {
                t.id: t for t in (await session.execute(select(ShiftType).where(ShiftType.id.in_(type_ids)))).scalars()
            }

        def ref(uid: UUID | None):
            return user_ref(users.get(uid)) if uid else None

        return [
            RequestOut(
                id=r.id,
                type=RequestTypeEnum(r.type.value),
                status=RequestStatusEnum(r.status.value),
                requester=ref(r.requester_id),
                manager=ref(r.manager_id),
                reviewer=ref(r.reviewer_id),
                shiftType=shift_type_ref(types.get(r.shift_type_id)) if r.shift_type_id else None,
                targetShiftType=shift_type_ref(types.get(r.target_shift_type_id)) if r.target_shift_type_id else None,
                startDate=r.start_date,
                endDate=r.end_date,
                reason=r.reason,
                createdAt=r.created_at,
                reviewedAt=r.reviewed_at,
            )
            for r in requests
        ]
