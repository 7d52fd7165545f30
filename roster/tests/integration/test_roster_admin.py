"""Integration tests: admin scheduling (weeks, inspector groups, days, roster membership)."""
from uuid import UUID

import pytest
from sqlalchemy.exc import IntegrityError

from roster.errors import AppError
from roster.models import InspectorGroup, TaskAssignment
from roster.schemas import ErrorCode, InspectorGroupCreate
from roster.services.roster_service import RosterService


@pytest.mark.integration
async def test_duplicate_week_for_building_is_409(client, world, headers, schedule_week):
    await schedule_week(world.hq, "2025-03")
    r = await client.post(
        "/api/admin/shifts",
        json={"buildingId": str(world.hq.id), "week": "2025-W03"},
        headers=headers(world.admin),
    )
    assert r.status_code == 409, r.text
    assert r.json()["errorCode"] == "DUPLICATE"


@pytest.mark.integration
async def test_invalid_week_is_400(client, world, headers):
    r = await client.post(
        "/api/admin/shifts",
        json={"buildingId": str(world.hq.id), "week": "March"},
        headers=headers(world.admin),
    )
    assert r.status_code == 400, r.text
    assert r.json()["errorCode"] == "VALIDATION_ERROR"


@pytest.mark.integration
async def test_padded_week_is_stored_canonically(client, world, headers):
    """Create-shift accepts the same week spellings as the availability query."""
    r = await client.post(
        "/api/admin/shifts",
        json={"buildingId": str(world.hq.id), "week": " 2025-W07 "},
        headers=headers(world.admin),
    )
    assert r.status_code == 201, r.text
    assert r.json()["week"] == "2025-07"

    r = await client.get(
        "/api/admin/shifts/inspectors/availability",
        params={"shiftTypeId": str(world.morning.id), "week": " 2025-07"},
        headers=headers(world.admin),
    )
    assert r.status_code == 200, r.text


@pytest.mark.integration
async def test_same_role_twice_in_a_week_is_409(client, world, headers, schedule_week):
    """At most one task assignment per (week, role)."""
    week = await schedule_week(world.hq, "2025-03")
    r = await client.post(
        f"/api/admin/shifts/{week.shift_id}/inspector-groups",
        json={"name": "Second lead crew", "roleId": str(world.lead.id), "days": []},
        headers=headers(world.admin),
    )
    assert r.status_code == 409, r.text
    assert r.json()["errorCode"] == "DUPLICATE"


@pytest.mark.integration
async def test_group_days_validation(client, world, headers, schedule_week):
    week = await schedule_week(world.hq, "2025-03")
    r = await client.post(
        f"/api/admin/shifts/{week.shift_id}/inspector-groups",
        json={
            "name": "Fire crew",
            "roleId": str(world.fire.id),
            "days": [{"dayOfWeek": 2, "shiftTypeId": None}, {"dayOfWeek": 2, "shiftTypeId": None}],
        },
        headers=headers(world.admin),
    )
    assert r.status_code == 400, r.text

    r = await client.post(
        f"/api/admin/shifts/{week.shift_id}/inspector-groups",
        json={"name": "Fire crew", "roleId": str(world.fire.id), "days": [{"dayOfWeek": 7}]},
        headers=headers(world.admin),
    )
    assert r.status_code == 400, r.text

    r = await client.post(
        f"/api/admin/shifts/{week.shift_id}/inspector-groups",
        json={"name": "Fire crew", "roleId": str(world.fire.id), "days": [{"dayOfWeek": 0, "shiftTypeId": str(world.lead.id)}]},
        headers=headers(world.admin),
    )
    assert r.status_code == 400, r.text


@pytest.mark.integration
async def test_set_single_day(client, world, headers, schedule_week):
    week = await schedule_week(world.hq, "2025-03", days=(1,))

    r = await client.put(
        f"/api/admin/inspector-groups/{week.group_id}/days/6",
        json={"shiftTypeId": str(world.night.id)},
        headers=headers(world.admin),
    )
    assert r.status_code == 200, r.text
    assert r.json() == {
        "dayOfWeek": 6,
        "date": "2025-01-18",
        "shiftType": {
            "id": str(world.night.id),
            "name": "Night",
            "startTime": "22:00:00",
            "endTime": "06:00:00",
        },
    }

    r = await client.put(
        f"/api/admin/inspector-groups/{week.group_id}/days/1",
        json={"shiftTypeId": None},
        headers=headers(world.admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["shiftType"] is None

    r = await client.put(
        f"/api/admin/inspector-groups/{week.group_id}/days/9",
        json={"shiftTypeId": None},
        headers=headers(world.admin),
    )
    assert r.status_code == 400, r.text


@pytest.mark.integration
async def test_roster_membership_rules(client, world, headers, schedule_week):
    week = await schedule_week(world.hq, "2025-03", inspectors=[(world.alice, False)])
    url = f"/api/admin/inspector-groups/{week.group_id}/inspectors"

    r = await client.post(url, json={"inspectorId": str(world.alice.id)}, headers=headers(world.admin))
    assert r.status_code == 409, r.text
    assert r.json()["errorCode"] == "DUPLICATE"

    r = await client.post(url, json={"inspectorId": str(world.manager.id)}, headers=headers(world.admin))
    assert r.status_code == 400, r.text

    r = await client.delete(f"{url}/{world.alice.id}", headers=headers(world.admin))
    assert r.status_code == 204, r.text
    r = await client.delete(f"{url}/{world.alice.id}", headers=headers(world.admin))
    assert r.status_code == 404, r.text

    r = await client.get(
        "/api/admin/shifts/inspectors/availability",
        params={"shiftTypeId": str(world.morning.id), "week": "2025-03"},
        headers=headers(world.admin),
    )
    assert all(row["isAvailable"] for row in r.json())


@pytest.mark.integration
async def test_delete_group_and_week(client, world, headers, schedule_week):
    week = await schedule_week(world.hq, "2025-03", inspectors=[(world.alice, False)])

    r = await client.delete(f"/api/admin/inspector-groups/{week.group_id}", headers=headers(world.admin))
    assert r.status_code == 204, r.text
    r = await client.get(f"/api/shifts/{week.shift_id}", headers=headers(world.admin))
    assert r.json()["taskAssignments"] == []

    r = await client.delete(f"/api/admin/shifts/{week.shift_id}", headers=headers(world.admin))
    assert r.status_code == 204, r.text
    r = await client.get(f"/api/shifts/{week.shift_id}", headers=headers(world.admin))
    assert r.status_code == 404, r.text

    r = await client.get("/api/admin/shifts", params={"buildingId": str(world.hq.id)}, headers=headers(world.admin))
    assert r.json() == []


@pytest.mark.integration
async def test_deleting_week_frees_inspectors(client, world, headers, schedule_week):
    week = await schedule_week(world.hq, "2025-03", inspectors=[(world.alice, False)])
    r = await client.delete(f"/api/admin/shifts/{week.shift_id}", headers=headers(world.admin))
    assert r.status_code == 204, r.text

    again = await schedule_week(world.warehouse, "2025-03", inspectors=[(world.alice, False)])
    assert again.group_id


@pytest.mark.integration
async def test_database_refuses_second_assignment_for_role_in_week(session, world, schedule_week):
    """Unique (shift_id, role_id) holds even when the service pre-check is bypassed."""
    week = await schedule_week(world.hq, "2025-03")
    group = InspectorGroup(name="second crew")
    session.add(group)
    await session.flush()
    session.add(TaskAssignment(shift_id=UUID(week.shift_id), role_id=world.lead.id, inspector_group_id=group.id))
    with pytest.raises(IntegrityError):
        await session.commit()
    await session.rollback()


@pytest.mark.integration
async def test_concurrent_duplicate_role_surfaces_as_409(session, world, schedule_week, monkeypatch):
    """A racing insert that slips past the existence check is reported as DUPLICATE, not a 500."""
    week = await schedule_week(world.hq, "2025-03")

    async def existence_check_misses(*args, **kwargs):
        return None

    monkeypatch.setattr(session, "scalar", existence_check_misses)
    with pytest.raises(AppError) as exc_info:
        await RosterService().create_group(
            session,
            UUID(week.shift_id),
            InspectorGroupCreate(name="late crew", roleId=world.lead.id),
        )
    assert exc_info.value.status_code == 409
    assert exc_info.value.error_code == ErrorCode.duplicate
