"""Integration tests: building -> week -> role -> group -> days/roster aggregation and visibility."""
import pytest


@pytest.mark.integration
async def test_admin_sees_full_nested_schedule(client, world, headers, schedule_week):
    """Each week lists its task assignments with role, 7 dated days and the roster (primary first)."""
    week = await schedule_week(
        world.hq, "2025-03", days=(1, 3), inspectors=[(world.bob, True), (world.alice, False)]
    )

    r = await client.get("/api/buildings/with-shifts", headers=headers(world.admin))
    assert r.status_code == 200, r.text
    buildings = {b["code"]: b for b in r.json()["buildings"]}
    assert set(buildings) == {"HQ", "WH1"}
    assert buildings["WH1"]["shifts"] == []
    hq = buildings["HQ"]
    assert hq["supervisor"]["fullName"] == "Morgan Lee"

    (shift,) = hq["shifts"]
    assert shift["id"] == week.shift_id
    assert shift["week"] == "2025-03"
    assert shift["weekStart"] == "2025-01-12"
    assert shift["weekEnd"] == "2025-01-18"

    (assignment,) = shift["taskAssignments"]
    assert assignment["role"]["name"] == "Lead Inspector"
    group = assignment["inspectorGroup"]
    assert group["id"] == week.group_id

    days = group["days"]
    assert [d["dayOfWeek"] for d in days] == list(range(7))
    assert days[0]["date"] == "2025-01-12"
    assert days[1]["date"] == "2025-01-13"
    assert days[1]["shiftType"]["name"] == "Morning"
    assert days[3]["shiftType"]["name"] == "Morning"
    assert days[0]["shiftType"] is None
    assert days[6]["shiftType"] is None

    roster = group["inspectors"]
    assert [(e["inspector"]["fullName"], e["isBackup"]) for e in roster] == [
        ("Alice Adams", False),
        ("Bob Brown", True),
    ]
    assert all(e["status"] == "PENDING" and e["responseAt"] is None for e in roster)


@pytest.mark.integration
async def test_supervisor_only_sees_own_buildings(client, world, headers, schedule_week):
    await schedule_week(world.hq, "2025-03")
    await schedule_week(world.warehouse, "2025-03")

    r = await client.get("/api/buildings/with-shifts", headers=headers(world.manager))
    assert r.status_code == 200, r.text
    assert [b["code"] for b in r.json()["buildings"]] == ["HQ"]

    r = await client.get("/api/buildings/with-shifts", headers=headers(world.alice))
    assert r.json()["buildings"] == []


@pytest.mark.integration
async def test_single_building_and_week_lookups(client, world, headers, schedule_week):
    week = await schedule_week(world.hq, "2025-03")

    r = await client.get(f"/api/buildings/{world.hq.id}", headers=headers(world.manager))
    assert r.status_code == 200, r.text
    assert r.json()["shifts"][0]["id"] == week.shift_id

    r = await client.get(f"/api/buildings/{world.warehouse.id}", headers=headers(world.manager))
    assert r.status_code == 403, r.text
    assert r.json()["errorCode"] == "FORBIDDEN"

    r = await client.get(f"/api/buildings/{world.lead.id}", headers=headers(world.admin))
    assert r.status_code == 404, r.text
    assert r.json()["errorCode"] == "BUILDING_NOT_FOUND"

    r = await client.get(f"/api/shifts/{week.shift_id}", headers=headers(world.admin))
    assert r.status_code == 200, r.text
    detail = r.json()
    assert detail["building"]["code"] == "HQ"
    assert len(detail["taskAssignments"]) == 1

    r = await client.get(f"/api/shifts/{world.lead.id}", headers=headers(world.admin))
    assert r.status_code == 404, r.text
    assert r.json()["errorCode"] == "SHIFT_NOT_FOUND"
