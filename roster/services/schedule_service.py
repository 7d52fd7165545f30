from collections import defaultdict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.errors import AppError, not_found
from roster.models import (
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
    BuildingRef,
    BuildingSummary,
    BuildingsWithShiftsResponse,
    ErrorCode,
    InspectorGroupSummary,
    Principal,
    RoleRef,
    RosterEntry,
    ShiftDaySummary,
    ShiftDetail,
    ShiftSummary,
    ShiftTypeRef,
    TaskAssignmentSummary,
    UserRef,
)
from roster.time_utils import day_date, week_bounds


def user_ref(user: User | None) -> UserRef | None:
    if user is None:
        return None
    return UserRef(id=user.id, username=user.username, fullName=user.full_name)


def shift_type_ref(shift_type: ShiftType | None) -> ShiftTypeRef | None:
    if shift_type is None:
        return None
    return ShiftTypeRef(
        id=shift_type.id,
        name=shift_type.name,
        startTime=shift_type.start_time,
        endTime=shift_type.end_time,
    )


def building_ref(building: Building) -> BuildingRef:
    return BuildingRef(id=building.id, name=building.name, code=building.code, area=building.area)


def day_summaries(week: str, days: list[ShiftDay], shift_types: dict[UUID, ShiftType]) -> list[ShiftDaySummary]:
    """Always seven entries, Sunday first; a missing or empty day has no shift type."""
    by_day = {d.day_of_week: d for d in days}
    out = []
    for dow in range(7):
        day = by_day.get(dow)
        shift_type = shift_types.get(day.shift_type_id) if day and day.shift_type_id else None
        out.append(ShiftDaySummary(dayOfWeek=dow, date=day_date(week, dow), shiftType=shift_type_ref(shift_type)))
    return out


def can_view_building(principal: Principal, building: Building) -> bool:
    return principal.isAdmin or building.supervisor_id == principal.id


class ScheduleService:
    """Read-only assembly of building -> week -> task assignment -> group -> days/roster."""

    async def list_buildings_with_shifts(
        self, session: AsyncSession, principal: Principal
    ) -> BuildingsWithShiftsResponse:
        stmt = select(Building).order_by(Building.name)
        if not principal.isAdmin:
            stmt = stmt.where(Building.supervisor_id == principal.id)
        buildings = list((await session.execute(stmt)).scalars().all())
        return BuildingsWithShiftsResponse(buildings=await self._building_summaries(session, buildings))

    async def get_building(self, session: AsyncSession, principal: Principal, building_id: UUID) -> BuildingSummary:
        building = await session.get(Building, building_id)
        if building is None:
            raise not_found(ErrorCode.building_not_found, "Building", building_id)
        if not can_view_building(principal, building):
            raise AppError(
                ErrorCode.forbidden,
                "You do not supervise this building.",
                f"User {principal.id} cannot view building {building_id}.",
                403,
            )
        (summary,) = await self._building_summaries(session, [building])
        return summary

    async def get_shift(self, session: AsyncSession, principal: Principal, shift_id: UUID) -> ShiftDetail:
        shift = await session.get(Shift, shift_id)
        if shift is None:
            raise not_found(ErrorCode.shift_not_found, "Shift", shift_id)
        building = await session.get(Building, shift.building_id)
        if building is None or not can_view_building(principal, building):
            raise AppError(
                ErrorCode.forbidden,
                "You do not supervise this building.",
                f"User {principal.id} cannot view shift {shift_id}.",
                403,
            )
        summaries = await self._shift_summaries(session, [shift])
        return ShiftDetail(**summaries[shift.id].model_dump(), building=building_ref(building))

    async def _building_summaries(self, session: AsyncSession, buildings: list[Building]) -> list[BuildingSummary]:
        if not buildings:
            return []
        building_ids = [b.id for b in buildings]
        supervisor_ids = {b.supervisor_id for b in buildings if b.supervisor_id}
        supervisors: dict[UUID, User] = {}
        if supervisor_ids:
            rows = await session.execute(select(User).where(User.id.in_(supervisor_ids)))
            supervisors = {u.id: u for u in rows.scalars().all()}

        shift_rows = await session.execute(
            select(Shift).where(Shift.building_id.in_(building_ids)).order_by(Shift.week)
        )
        shifts = list(shift_rows.scalars().all())
        summaries = await self._shift_summaries(session, shifts)
        shifts_by_building: dict[UUID, list[ShiftSummary]] = defaultdict(list)
        for shift in shifts:
            shifts_by_building[shift.building_id].append(summaries[shift.id])

        return [
            BuildingSummary(
                id=b.id,
                name=b.name,
                code=b.code,
                area=b.area,
                supervisor=user_ref(supervisors.get(b.supervisor_id)) if b.supervisor_id else None,
                shifts=shifts_by_building.get(b.id, []),
            )
            for b in buildings
        ]

    async def _shift_summaries(self, session: AsyncSession, shifts: list[Shift]) -> dict[UUID, ShiftSummary]:
        if not shifts:
            return {}
        shift_ids = [s.id for s in shifts]
        ta_rows = await session.execute(
            select(TaskAssignment, Role)
            .join(Role, Role.id == TaskAssignment.role_id)
            .where(TaskAssignment.shift_id.in_(shift_ids))
            .order_by(Role.name)
        )
        assignments = list(ta_rows.all())
        group_ids = {ta.inspector_group_id for ta, _ in assignments}

        groups: dict[UUID, InspectorGroup] = {}
        days_by_group: dict[UUID, list[ShiftDay]] = defaultdict(list)
        roster_by_group: dict[UUID, list[RosterEntry]] = defaultdict(list)
        shift_types: dict[UUID, ShiftType] = {}
        if group_ids:
            group_rows = await session.execute(select(InspectorGroup).where(InspectorGroup.id.in_(group_ids)))
            groups = {g.id: g for g in group_rows.scalars().all()}

            day_rows = await session.execute(select(ShiftDay).where(ShiftDay.inspector_group_id.in_(group_ids)))
            for day in day_rows.scalars().all():
                days_by_group[day.inspector_group_id].append(day)

            type_ids = {d.shift_type_id for ds in days_by_group.values() for d in ds if d.shift_type_id}
            if type_ids:
                type_rows = await session.execute(select(ShiftType).where(ShiftType.id.in_(type_ids)))
                shift_types = {t.id: t for t in type_rows.scalars().all()}

            roster_rows = await session.execute(
                select(ShiftInspector, User)
                .join(User, User.id == ShiftInspector.inspector_id)
                .where(ShiftInspector.inspector_group_id.in_(group_ids))
                .order_by(ShiftInspector.is_backup, User.full_name)
            )
            for entry, inspector in roster_rows.all():
                roster_by_group[entry.inspector_group_id].append(
                    RosterEntry(
                        id=entry.id,
                        inspector=user_ref(inspector),
                        isBackup=entry.is_backup,
                        status=AssignmentStatusEnum(entry.status.value),
                        rejectionReason=entry.rejection_reason,
                        responseAt=entry.response_at,
                    )
                )

        week_by_shift = {s.id: s.week for s in shifts}
        tas_by_shift: dict[UUID, list[TaskAssignmentSummary]] = defaultdict(list)
        for ta, role in assignments:
            group = groups.get(ta.inspector_group_id)
            if group is None:
                continue
            tas_by_shift[ta.shift_id].append(
                TaskAssignmentSummary(
                    id=ta.id,
                    role=RoleRef(id=role.id, name=role.name),
                    inspectorGroup=InspectorGroupSummary(
                        id=group.id,
                        name=group.name,
                        days=day_summaries(week_by_shift[ta.shift_id], days_by_group[group.id], shift_types),
                        inspectors=roster_by_group[group.id],
                    ),
                )
            )

        out: dict[UUID, ShiftSummary] = {}
        for shift in shifts:
            start, end = week_bounds(shift.week)
            out[shift.id] = ShiftSummary(
                id=shift.id,
                week=shift.week,
                weekStart=start,
                weekEnd=end,
                taskAssignments=tas_by_shift.get(shift.id, []),
            )
        return out
