import logging
from collections import defaultdict
from datetime import UTC, datetime
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from roster.errors import AppError, not_found
from roster.models import (
    AssignmentStatus,
    AuditLog,
    Building,
    InspectorGroup,
    Role,
    Shift,
    ShiftDay,
    ShiftInspector,
    ShiftType,
    TaskAssignment,
    User,
)
from roster.schemas import (
    AssignmentStatusEnum,
    ErrorCode,
    MyAssignmentOut,
    Principal,
    ResponseActionEnum,
    RoleRef,
    ShiftResponseIn,
    ShiftResponseOut,
)
from roster.services.notification_service import NotificationService
from roster.services.schedule_service import building_ref, day_summaries
from roster.time_utils import week_bounds

logger = logging.getLogger(__name__)


class ResponseService:
    """Inspector accept/reject of a roster slot.

    A slot moves PENDING -> ACCEPTED or PENDING -> REJECTED exactly once; the
    status guard lives in the UPDATE itself so concurrent responses cannot both win.
    """

    def __init__(self) -> None:
        self.notifications = NotificationService()

    async def respond(
        self,
        session: AsyncSession,
        background: BackgroundTasks,
        principal: Principal,
        shift_id: UUID,
        inspector_id: UUID,
        payload: ShiftResponseIn,
        correlation_id: str,
    ) -> ShiftResponseOut:
        if principal.id != inspector_id:
            raise AppError(
                ErrorCode.forbidden,
                "You can only respond to your own assignments.",
                f"User {principal.id} tried to respond for inspector {inspector_id}.",
                403,
            )
        reason = (payload.rejectionReason or "").strip() or None
        if payload.action == ResponseActionEnum.reject and reason is None:
            raise AppError(
                ErrorCode.validation_error,
                "A rejection reason is required.",
                "rejectionReason is empty for REJECT.",
                400,
            )

        shift = await session.get(Shift, shift_id)
        if shift is None:
            raise not_found(ErrorCode.shift_not_found, "Shift", shift_id)

        stmt = (
            select(ShiftInspector)
            .join(TaskAssignment, TaskAssignment.inspector_group_id == ShiftInspector.inspector_group_id)
            .where(TaskAssignment.shift_id == shift_id, ShiftInspector.inspector_id == inspector_id)
        )
        if payload.inspectorGroupId is not None:
            stmt = stmt.where(ShiftInspector.inspector_group_id == payload.inspectorGroupId)
        entries = list((await session.execute(stmt)).scalars().all())
        if not entries:
            raise not_found(ErrorCode.assignment_not_found, "Assignment", f"{shift_id}/{inspector_id}")
        if len(entries) > 1:
            raise AppError(
                ErrorCode.validation_error,
                "You are rostered in more than one group this week; choose one.",
                f"{len(entries)} roster rows for inspector {inspector_id} on shift {shift_id}; inspectorGroupId required.",
                400,
            )
        entry = entries[0]

        accepted = payload.action == ResponseActionEnum.accept
        new_status = AssignmentStatus.accepted if accepted else AssignmentStatus.rejected
        responded_at = datetime.now(UTC)
        await self._update_status_if_pending(
            session,
            entry.id,
            new_status,
            rejection_reason=None if accepted else reason,
            response_at=responded_at,
        )

        session.add(
            AuditLog(
                action=f"roster.response_{new_status.value.lower()}",
                meta={
                    "shift_inspector_id": str(entry.id),
                    "shift_id": str(shift_id),
                    "inspector_id": str(inspector_id),
                    "correlation_id": correlation_id,
                },
            )
        )
        if not accepted:
            await self._notify_supervisor(session, background, principal, shift, reason)
        await session.commit()
        logger.info(
            "shift_response_recorded",
            extra={"shift_id": str(shift_id), "inspector_id": str(inspector_id), "status": new_status.value},
        )
        return ShiftResponseOut(
            id=entry.id,
            shiftId=shift_id,
            inspectorGroupId=entry.inspector_group_id,
            inspectorId=inspector_id,
            status=AssignmentStatusEnum(new_status.value),
            rejectionReason=None if accepted else reason,
            responseAt=responded_at,
            correlationId=correlation_id,
        )

    async def list_mine(
        self,
        session: AsyncSession,
        principal: Principal,
        status: AssignmentStatusEnum | None = None,
    ) -> list[MyAssignmentOut]:
        stmt = (
            select(ShiftInspector, InspectorGroup, TaskAssignment, Role, Shift, Building)
            .join(InspectorGroup, InspectorGroup.id == ShiftInspector.inspector_group_id)
            .join(TaskAssignment, TaskAssignment.inspector_group_id == InspectorGroup.id)
            .join(Role, Role.id == TaskAssignment.role_id)
            .join(Shift, Shift.id == TaskAssignment.shift_id)
            .join(Building, Building.id == Shift.building_id)
            .where(ShiftInspector.inspector_id == principal.id)
            .order_by(Shift.week.desc(), Building.name)
        )
        if status is not None:
            stmt = stmt.where(ShiftInspector.status == AssignmentStatus(status.value))
        rows = list((await session.execute(stmt)).all())
        if not rows:
            return []

        group_ids = {group.id for _, group, *_ in rows}
        days_by_group: dict[UUID, list[ShiftDay]] = defaultdict(list)
        day_rows = await session.execute(select(ShiftDay).where(ShiftDay.inspector_group_id.in_(group_ids)))
        for day in day_rows.scalars().all():
            days_by_group[day.inspector_group_id].append(day)
        type_ids = {d.shift_type_id for ds in days_by_group.values() for d in ds if d.shift_type_id}
        shift_types: dict[UUID, ShiftType] = {}
        if type_ids:
            type_rows = await session.execute(select(ShiftType).where(ShiftType.id.in_(type_ids)))
            shift_types = {t.id: t for t in type_rows.scalars().all()}

        out = []
        for entry, group, _, role, shift, building in rows:
            start, _ = week_bounds(shift.week)
            out.append(
                MyAssignmentOut(
                    id=entry.id,
                    shiftId=shift.id,
                    week=shift.week,
                    weekStart=start,
                    building=building_ref(building),
                    role=RoleRef(id=role.id, name=role.name),
                    inspectorGroupId=group.id,
                    inspectorGroupName=group.name,
                    isBackup=entry.is_backup,
                    status=AssignmentStatusEnum(entry.status.value),
                    rejectionReason=entry.rejection_reason,
                    responseAt=entry.response_at,
                    days=day_summaries(shift.week, days_by_group[group.id], shift_types),
                )
            )
        return out

    async def _update_status_if_pending(
        self,
        session: AsyncSession,
        entry_id: UUID,
        status: AssignmentStatus,
        **values,
    ) -> ShiftInspector:
        stmt = (
            update(ShiftInspector)
            .where(and_(ShiftInspector.id == entry_id, ShiftInspector.status == AssignmentStatus.pending))
            .values(status=status, **values)
            .returning(ShiftInspector)
        )
        result = await session.execute(stmt)
        entry = result.scalars().first()
        if entry is None:
            raise AppError(
                ErrorCode.response_not_pending,
                "You have already responded to this assignment.",
                f"ShiftInspector {entry_id} is no longer pending.",
                409,
            )
        return entry

    async def _notify_supervisor(
        self,
        session: AsyncSession,
        background: BackgroundTasks,
        principal: Principal,
        shift: Shift,
        reason: str | None,
    ) -> None:
        building = await session.get(Building, shift.building_id)
        if building is None or building.supervisor_id is None:
            return
        supervisor = await session.get(User, building.supervisor_id)
        if supervisor is None:
            return
        message = f"{principal.fullName} rejected the {building.name} shift for week {shift.week}: {reason}"
        self.notifications.add(
            session,
            supervisor.id,
            "SHIFT_REJECTED",
            "Shift Assignment Rejected",
            message,
            {"shiftId": str(shift.id), "inspectorId": str(principal.id)},
        )
        self.notifications.email(background, supervisor, "Shift Assignment Rejected", message)
