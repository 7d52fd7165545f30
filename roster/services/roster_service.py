import logging
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
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
    InspectorGroupCreate,
    InspectorGroupSummary,
    Principal,
    RoleRef,
    RosterAddIn,
    RosterEntry,
    ShiftCreate,
    ShiftDaySummary,
    ShiftOut,
    TaskAssignmentSummary,
)
from roster.services.availability_service import AvailabilityService, parse_week_or_400
from roster.services.notification_service import NotificationService
from roster.services.schedule_service import day_summaries, user_ref
from roster.time_utils import week_bounds

logger = logging.getLogger(__name__)


def shift_out(shift: Shift) -> ShiftOut:
    start, end = week_bounds(shift.week)
    return ShiftOut(id=shift.id, buildingId=shift.building_id, week=shift.week, weekStart=start, weekEnd=end)


class RosterService:
    """Admin-side editing of weekly shifts, inspector groups, their days and rosters."""

    def __init__(self) -> None:
        self.availability = AvailabilityService()
        self.notifications = NotificationService()

    async def list_shifts(self, session: AsyncSession, building_id: UUID | None = None) -> list[ShiftOut]:
        stmt = select(Shift).order_by(Shift.week)
        if building_id is not None:
            stmt = stmt.where(Shift.building_id == building_id)
        result = await session.execute(stmt)
        return [shift_out(s) for s in result.scalars().all()]

    async def create_shift(self, session: AsyncSession, principal: Principal, payload: ShiftCreate) -> ShiftOut:
        week = parse_week_or_400(payload.week)
        if await session.get(Building, payload.buildingId) is None:
            raise not_found(ErrorCode.building_not_found, "Building", payload.buildingId)
        existing = await session.scalar(
            select(Shift).where(Shift.building_id == payload.buildingId, Shift.week == week)
        )
        if existing:
            raise AppError(
                ErrorCode.duplicate,
                "This building already has a shift for that week.",
                f"Shift for building {payload.buildingId} week {week} exists ({existing.id}).",
                409,
            )
        shift = Shift(building_id=payload.buildingId, week=week, created_by=principal.id)
        session.add(shift)
        try:
            await session.flush()
        except IntegrityError as exc:
            await session.rollback()
            raise AppError(
                ErrorCode.duplicate,
                "This building already has a shift for that week.",
                f"Concurrent insert for building {payload.buildingId} week {week}: {exc.orig}",
                409,
            ) from exc
        session.add(AuditLog(action="shift.created", meta={"shift_id": str(shift.id), "week": week}))
        await session.commit()
        return shift_out(shift)

    async def delete_shift(self, session: AsyncSession, shift_id: UUID) -> None:
        shift = await session.get(Shift, shift_id)
        if shift is None:
            raise not_found(ErrorCode.shift_not_found, "Shift", shift_id)
        week = shift.week
        group_ids = list(
            (
                await session.execute(
                    select(TaskAssignment.inspector_group_id).where(TaskAssignment.shift_id == shift_id)
                )
            ).scalars().all()
        )
        await session.execute(delete(TaskAssignment).where(TaskAssignment.shift_id == shift_id))
        await self._delete_groups(session, group_ids)
        await session.execute(delete(Shift).where(Shift.id == shift_id))
        session.add(AuditLog(action="shift.deleted", meta={"shift_id": str(shift_id), "week": week}))
        await session.commit()
        await self.availability.invalidate(week)

    async def create_group(
        self,
        session: AsyncSession,
        shift_id: UUID,
        payload: InspectorGroupCreate,
    ) -> TaskAssignmentSummary:
        shift = await session.get(Shift, shift_id)
        if shift is None:
            raise not_found(ErrorCode.shift_not_found, "Shift", shift_id)
        role = await session.get(Role, payload.roleId)
        if role is None:
            raise AppError(ErrorCode.validation_error, "Invalid role.", f"Role {payload.roleId} not found.", 400)
        type_ids = {d.shiftTypeId for d in payload.days if d.shiftTypeId}
        shift_types = await self._shift_types(session, type_ids)

        taken = await session.scalar(
            select(TaskAssignment).where(TaskAssignment.shift_id == shift_id, TaskAssignment.role_id == role.id)
        )
        if taken:
            raise AppError(
                ErrorCode.duplicate,
                f"The {role.name} role is already staffed for this week.",
                f"TaskAssignment exists for shift {shift_id} role {role.id}.",
                409,
            )

        group = InspectorGroup(name=payload.name)
        session.add(group)
        await session.flush()
        requested = {d.dayOfWeek: d.shiftTypeId for d in payload.days}
        days = [
            ShiftDay(inspector_group_id=group.id, day_of_week=dow, shift_type_id=requested.get(dow))
            for dow in range(7)
        ]
        session.add_all(days)
        assignment = TaskAssignment(shift_id=shift_id, role_id=role.id, inspector_group_id=group.id)
        session.add(assignment)
        try:
            await session.flush()
        except IntegrityError as exc:
            await session.rollback()
            raise AppError(
                ErrorCode.duplicate,
                f"The {role.name} role is already staffed for this week.",
                f"Unique (shift_id, role_id) violated for shift {shift_id}: {exc.orig}",
                409,
            ) from exc
        session.add(
            AuditLog(
                action="inspector_group.created",
                meta={"shift_id": str(shift_id), "group_id": str(group.id), "role_id": str(role.id)},
            )
        )
        await session.commit()
        return TaskAssignmentSummary(
            id=assignment.id,
            role=RoleRef(id=role.id, name=role.name),
            inspectorGroup=InspectorGroupSummary(
                id=group.id,
                name=group.name,
                days=day_summaries(shift.week, days, shift_types),
                inspectors=[],
            ),
        )

    async def set_day(
        self,
        session: AsyncSession,
        group_id: UUID,
        day_of_week: int,
        shift_type_id: UUID | None,
    ) -> ShiftDaySummary:
        _, _, shift = await self._group_context(session, group_id)
        shift_types = await self._shift_types(session, {shift_type_id} if shift_type_id else set())
        day = await session.scalar(
            select(ShiftDay).where(ShiftDay.inspector_group_id == group_id, ShiftDay.day_of_week == day_of_week)
        )
        if day is None:
            day = ShiftDay(inspector_group_id=group_id, day_of_week=day_of_week)
            session.add(day)
        day.shift_type_id = shift_type_id
        await session.commit()
        return day_summaries(shift.week, [day], shift_types)[day_of_week]

    async def add_inspector(
        self,
        session: AsyncSession,
        background: BackgroundTasks,
        principal: Principal,
        group_id: UUID,
        payload: RosterAddIn,
    ) -> RosterEntry:
        group, assignment, shift = await self._group_context(session, group_id)
        inspector = await session.get(User, payload.inspectorId)
        if inspector is None or not inspector.is_inspector:
            raise AppError(
                ErrorCode.validation_error,
                "Selected user is not an inspector.",
                f"User {payload.inspectorId} missing or not flagged is_inspector.",
                400,
            )
        already = await session.scalar(
            select(ShiftInspector).where(
                ShiftInspector.inspector_group_id == group_id,
                ShiftInspector.inspector_id == inspector.id,
            )
        )
        if already:
            raise AppError(
                ErrorCode.duplicate,
                "This inspector is already in the group.",
                f"ShiftInspector exists for group {group_id} inspector {inspector.id}.",
                409,
            )
        await self.availability.ensure_available(session, inspector.id, shift.week, group_id)

        entry = ShiftInspector(
            inspector_group_id=group_id,
            inspector_id=inspector.id,
            is_backup=payload.isBackup,
            status=AssignmentStatus.pending,
            assigned_by=principal.id,
        )
        session.add(entry)
        try:
            await session.flush()
        except IntegrityError as exc:
            await session.rollback()
            raise AppError(
                ErrorCode.duplicate,
                "This inspector is already in the group.",
                f"Unique (group, inspector) violated: {exc.orig}",
                409,
            ) from exc

        building = await session.get(Building, shift.building_id)
        role = await session.get(Role, assignment.role_id)
        self.notifications.notify_shift_assignment(
            session,
            background,
            inspector=inspector,
            shift_id=shift.id,
            building_name=building.name if building else "",
            week=shift.week,
            role_name=role.name if role else group.name,
            is_backup=payload.isBackup,
        )
        session.add(
            AuditLog(
                action="roster.inspector_added",
                meta={"group_id": str(group_id), "inspector_id": str(inspector.id), "week": shift.week},
            )
        )
        await session.commit()
        await self.availability.invalidate(shift.week)
        logger.info(
            "inspector_rostered",
            extra={"group_id": str(group_id), "inspector_id": str(inspector.id), "week": shift.week},
        )
        return RosterEntry(
            id=entry.id,
            inspector=user_ref(inspector),
            isBackup=entry.is_backup,
            status=AssignmentStatusEnum.pending,
        )

    async def remove_inspector(self, session: AsyncSession, group_id: UUID, inspector_id: UUID) -> None:
        _, _, shift = await self._group_context(session, group_id)
        result = await session.execute(
            delete(ShiftInspector).where(
                ShiftInspector.inspector_group_id == group_id,
                ShiftInspector.inspector_id == inspector_id,
            )
        )
        if result.rowcount == 0:
            raise not_found(ErrorCode.assignment_not_found, "Assignment", f"{group_id}/{inspector_id}")
        session.add(
            AuditLog(
                action="roster.inspector_removed",
                meta={"group_id": str(group_id), "inspector_id": str(inspector_id), "week": shift.week},
            )
        )
        await session.commit()
        await self.availability.invalidate(shift.week)

    async def delete_group(self, session: AsyncSession, group_id: UUID) -> None:
        _, _, shift = await self._group_context(session, group_id)
        await session.execute(delete(TaskAssignment).where(TaskAssignment.inspector_group_id == group_id))
        await self._delete_groups(session, [group_id])
        await session.commit()
        await self.availability.invalidate(shift.week)

    async def _group_context(
        self, session: AsyncSession, group_id: UUID
    ) -> tuple[InspectorGroup, TaskAssignment, Shift]:
        group = await session.get(InspectorGroup, group_id)
        if group is None:
            raise not_found(ErrorCode.group_not_found, "Inspector group", group_id)
        assignment = await session.scalar(
            select(TaskAssignment).where(TaskAssignment.inspector_group_id == group_id)
        )
        shift = await session.get(Shift, assignment.shift_id) if assignment else None
        if assignment is None or shift is None:
            raise AppError(
                ErrorCode.shift_not_found,
                "This inspector group is not attached to a week.",
                f"No task assignment/shift for group {group_id}.",
                404,
            )
        return group, assignment, shift

    async def _shift_types(self, session: AsyncSession, type_ids: set[UUID]) -> dict[UUID, ShiftType]:
        if not type_ids:
            return {}
        rows = await session.execute(select(ShiftType).where(ShiftType.id.in_(type_ids)))
        found = {t.id: t for t in rows.scalars().all()}
        missing = type_ids - set(found)
        if missing:
            raise AppError(
                ErrorCode.validation_error,
                "Invalid shift type.",
                f"Unknown shift type id(s): {', '.join(sorted(str(m) for m in missing))}",
                400,
            )
        return found

    @staticmethod
    async def _delete_groups(session: AsyncSession, group_ids: list[UUID]) -> None:
        if not group_ids:
            return
        await session.execute(delete(ShiftInspector).where(ShiftInspector.inspector_group_id.in_(group_ids)))
        await session.execute(delete(ShiftDay).where(ShiftDay.inspector_group_id.in_(group_ids)))
        await session.execute(delete(InspectorGroup).where(InspectorGroup.id.in_(group_ids)))

