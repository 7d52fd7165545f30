"""
Seed the database with users, reference data, agencies and one staffed week for demos.

Run from project root with:
  python -m roster.scripts.seed_db

Uses DATABASE_URL from environment (or .env). Idempotent: users, roles, shift
types, task types, agencies and buildings are upserted by their unique key; the demo
week is only created when missing.
"""

import asyncio
from datetime import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roster.db import SessionLocal, init_db
from roster.models import (
    Agency,
    AssignmentStatus,
    Building,
    InspectorGroup,
    Role,
    Shift,
    ShiftDay,
    ShiftInspector,
    ShiftType,
    TaskAssignment,
    TaskType,
    User,
)
from roster.time_utils import org_today, week_of


# admin@example.com is the only admin; the X-User-Id header takes its id.
USERS = [
    {"username": "admin@example.com", "full_name": "Priya Smith", "is_admin": True},
    {"username": "manager@example.com", "full_name": "Morgan Lee", "is_manager": True},
    {"username": "jdoe@example.com", "full_name": "John Doe", "is_inspector": True},
    {"username": "ajohnson@example.com", "full_name": "Alex Johnson", "is_inspector": True},
    {"username": "mjohnson@example.com", "full_name": "Michael Johnson", "is_inspector": True},
    {"username": "rkhan@example.com", "full_name": "Rania Khan", "is_inspector": True},
    # Edge: both manager and inspector
    {"username": "tnguyen@example.com", "full_name": "Tam Nguyen", "is_manager": True, "is_inspector": True},
]

ROLES = [
    ("Lead Inspector", "Owns the building walk-through for the week"),
    ("Fire Safety", "Extinguishers, alarms, egress"),
    ("Electrical", None),
]

SHIFT_TYPES = [
    ("Morning", time(6, 0), time(14, 0)),
    ("Afternoon", time(14, 0), time(22, 0)),
    # Edge: crosses midnight
    ("Night", time(22, 0), time(6, 0)),
]

TASK_TYPES = ["Routine inspection", "Follow-up visit", "Incident report"]

AGENCIES = [
    ("Metro Fire Services", "Sprinkler and alarm contractor"),
    ("Citywide Electrical", None),
]

BUILDINGS = [
    {"code": "HQ", "name": "Head Office", "area": "Downtown"},
    {"code": "WH1", "name": "North Warehouse", "area": "Industrial Park"},
]


async def _upsert(session: AsyncSession, model, key: str, value, **fields):
    row = await session.scalar(select(model).where(getattr(model, key) == value))
    if row is None:
        row = model(**{key: value}, **fields)
        session.add(row)
    else:
        for name, field_value in fields.items():
            setattr(row, name, field_value)
    await session.flush()
    return row


async def seed(session: AsyncSession) -> None:
    await init_db()

    users = {}
    for data in USERS:
        data = dict(data)
        username = data.pop("username")
        users[username] = await _upsert(
            session,
            User,
            "username",
            username,
            full_name=data["full_name"],
            is_admin=data.get("is_admin", False),
            is_manager=data.get("is_manager", False),
            is_inspector=data.get("is_inspector", False),
        )

    roles = {name: await _upsert(session, Role, "name", name, description=desc) for name, desc in ROLES}
    shift_types = {
        name: await _upsert(session, ShiftType, "name", name, start_time=start, end_time=end)
        for name, start, end in SHIFT_TYPES
    }
    for name in TASK_TYPES:
        await _upsert(session, TaskType, "name", name)
    admin = users["admin@example.com"]
    for name, desc in AGENCIES:
        await _upsert(session, Agency, "name", name, description=desc, created_by=admin.id)

    supervisor = users["manager@example.com"]
    buildings = {
        b["code"]: await _upsert(session, Building, "code", b["code"], name=b["name"], area=b["area"], supervisor_id=supervisor.id)
        for b in BUILDINGS
    }
    await session.commit()

    week = week_of(org_today())
    hq = buildings["HQ"]
    if await session.scalar(select(Shift).where(Shift.building_id == hq.id, Shift.week == week)):
        print(f"Seed complete: reference data updated; week {week} already present.")
        return

    shift = Shift(building_id=hq.id, week=week, created_by=admin.id)
    group = InspectorGroup(name="HQ weekday crew")
    session.add_all([shift, group])
    await session.flush()
    morning = shift_types["Morning"]
    # Monday..Friday mornings, weekend off
    session.add_all(
        ShiftDay(inspector_group_id=group.id, day_of_week=dow, shift_type_id=morning.id if 1 <= dow <= 5 else None)
        for dow in range(7)
    )
    session.add(TaskAssignment(shift_id=shift.id, role_id=roles["Lead Inspector"].id, inspector_group_id=group.id))
    session.add_all(
        [
            ShiftInspector(
                inspector_group_id=group.id,
                inspector_id=users["jdoe@example.com"].id,
                is_backup=False,
                status=AssignmentStatus.pending,
                assigned_by=admin.id,
            ),
            ShiftInspector(
                inspector_group_id=group.id,
                inspector_id=users["ajohnson@example.com"].id,
                is_backup=True,
                status=AssignmentStatus.pending,
                assigned_by=admin.id,
            ),
        ]
    )
    await session.commit()
    print(f"Seed complete: users, reference data and week {week} for {hq.name} created.")


if __name__ == "__main__":
    async def _run():
        async with SessionLocal() as session:
            await seed(session)

    asyncio.run(_run())
