"""Integration tests: swap/leave request workflow (create, visibility, manager assignment, review)."""
import pytest


def _leave(start="2025-02-03", end="2025-02-05", reason="Family event"):
    return {"type": "LEAVE", "startDate": start, "endDate": end, "reason": reason}


async def _create(client, headers, user, body):
    r = await client.post("/api/requests", json=body, headers=headers(user))
    assert r.status_code == 201, r.text
    return r.json()


async def _assign(client, headers, world, request_id, manager):
    return await client.post(
        f"/api/admin/requests/{request_id}/assign",
        json={"managerId": str(manager.id)},
        headers=headers(world.admin),
    )


async def _review(client, headers, user, request_id, status):
    return await client.put(f"/api/admin/requests/{request_id}", json={"status": status}, headers=headers(user))


@pytest.mark.integration
async def test_create_leave_and_swap_requests(client, world, headers):
    leave = await _create(client, headers, world.alice, _leave())
    assert leave["status"] == "PENDING"
    assert leave["type"] == "LEAVE"
    assert leave["requester"]["fullName"] == "Alice Adams"
    assert leave["createdAt"] is not None

    one_day = await _create(client, headers, world.alice, _leave("2025-02-10", "2025-02-10"))
    assert one_day["startDate"] == one_day["endDate"] == "2025-02-10"

    swap = await _create(
        client,
        headers,
        world.bob,
        {"type": "SHIFT_SWAP", "shiftTypeId": str(world.morning.id), "targetShiftTypeId": str(world.night.id)},
    )
    assert swap["shiftType"]["name"] == "Morning"
    assert swap["targetShiftType"]["name"] == "Night"


@pytest.mark.integration
async def test_invalid_requests_are_400(client, world, headers):
    cases = [
        _leave("2025-02-05", "2025-02-03"),
        {"type": "LEAVE", "startDate": "2025-02-05"},
        {"type": "SHIFT_SWAP", "shiftTypeId": str(world.morning.id), "targetShiftTypeId": str(world.morning.id)},
        {"type": "SHIFT_SWAP", "shiftTypeId": str(world.morning.id)},
        {"type": "SHIFT_SWAP", "shiftTypeId": str(world.morning.id), "targetShiftTypeId": str(world.lead.id)},
    ]
    for body in cases:
        r = await client.post("/api/requests", json=body, headers=headers(world.alice))
        assert r.status_code == 400, (body, r.text)
        assert r.json()["errorCode"] == "VALIDATION_ERROR"


@pytest.mark.integration
async def test_admin_cannot_create_requests(client, world, headers):
    r = await client.post("/api/requests", json=_leave(), headers=headers(world.admin))
    assert r.status_code == 403, r.text


@pytest.mark.integration
async def test_request_visibility_and_order(client, world, headers):
    """Admin: all; manager: assigned to them; others: their own. Pending first."""
    first = await _create(client, headers, world.alice, _leave())
    second = await _create(client, headers, world.alice, _leave("2025-03-03", "2025-03-04"))
    bobs = await _create(client, headers, world.bob, _leave())

    assert (await _assign(client, headers, world, first["id"], world.manager)).status_code == 200
    assert (await _assign(client, headers, world, bobs["id"], world.manager)).status_code == 200
    assert (await _review(client, headers, world.manager, first["id"], "APPROVED")).status_code == 200

    r = await client.get("/api/requests", headers=headers(world.admin))
    rows = r.json()
    assert {row["id"] for row in rows} == {first["id"], second["id"], bobs["id"]}
    assert [row["status"] for row in rows] == ["PENDING", "PENDING", "APPROVED"]

    r = await client.get("/api/requests", headers=headers(world.alice))
    assert {row["id"] for row in r.json()} == {first["id"], second["id"]}

    r = await client.get("/api/requests", headers=headers(world.manager))
    assert [row["id"] for row in r.json()] == [bobs["id"], first["id"]]

    r = await client.get("/api/requests", headers=headers(world.other_manager))
    assert r.json() == []


@pytest.mark.integration
async def test_assign_manager_rules(client, world, headers):
    req = await _create(client, headers, world.alice, _leave())

    r = await _assign(client, headers, world, req["id"], world.bob)
    assert r.status_code == 400, r.text

    r = await _assign(client, headers, world, req["id"], world.manager)
    assert r.status_code == 200, r.text
    assert r.json()["manager"]["fullName"] == "Morgan Lee"

    r = await _assign(client, headers, world, req["id"], world.other_manager)
    assert r.status_code == 200, r.text
    assert r.json()["manager"]["fullName"] == "Sam Ortiz"

    r = await client.get("/api/notifications", headers=headers(world.other_manager))
    assert [n["type"] for n in r.json()] == ["REQUEST_ASSIGNED"]

    r = await client.post(
        f"/api/admin/requests/{req['id']}/assign",
        json={"managerId": str(world.manager.id)},
        headers=headers(world.manager),
    )
    assert r.status_code == 403, r.text

    assert (await _review(client, headers, world.admin, req["id"], "REJECTED")).status_code == 200
    r = await _assign(client, headers, world, req["id"], world.manager)
    assert r.status_code == 409, r.text
    assert r.json()["errorCode"] == "REQUEST_NOT_PENDING"


@pytest.mark.integration
async def test_review_sets_reviewer_and_notifies_requester(client, world, headers):
    req = await _create(client, headers, world.alice, _leave())
    await _assign(client, headers, world, req["id"], world.manager)

    r = await _review(client, headers, world.manager, req["id"], "APPROVED")
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["status"] == "APPROVED"
    assert data["reviewer"]["fullName"] == "Morgan Lee"
    assert data["reviewedAt"] is not None

    r = await client.get("/api/notifications", headers=headers(world.alice))
    (notification,) = r.json()
    assert notification["type"] == "REQUEST_APPROVED"
    assert notification["metadata"]["requestId"] == req["id"]


@pytest.mark.integration
async def test_second_approval_is_409_for_admin(client, world, headers):
    req = await _create(client, headers, world.alice, _leave())
    assert (await _review(client, headers, world.admin, req["id"], "APPROVED")).status_code == 200

    r = await _review(client, headers, world.admin, req["id"], "APPROVED")
    assert r.status_code == 409, r.text
    assert r.json()["errorCode"] == "REQUEST_NOT_PENDING"

    r = await _review(client, headers, world.admin, req["id"], "REJECTED")
    assert r.status_code == 409, r.text


@pytest.mark.integration
async def test_unassigned_manager_is_forbidden_before_state_check(client, world, headers):
    """A manager who is not assigned gets 403 whether or not the request is still pending."""
    req = await _create(client, headers, world.alice, _leave())
    await _assign(client, headers, world, req["id"], world.manager)

    r = await _review(client, headers, world.other_manager, req["id"], "APPROVED")
    assert r.status_code == 403, r.text

    assert (await _review(client, headers, world.manager, req["id"], "APPROVED")).status_code == 200
    r = await _review(client, headers, world.other_manager, req["id"], "APPROVED")
    assert r.status_code == 403, r.text


@pytest.mark.integration
async def test_requester_cannot_review_own_request(client, world, headers, make_user):
    hybrid = await make_user("Tam Nguyen", manager=True, inspector=True)
    req = await _create(client, headers, hybrid, _leave())
    await _assign(client, headers, world, req["id"], hybrid)

    r = await _review(client, headers, hybrid, req["id"], "APPROVED")
    assert r.status_code == 403, r.text

    r = await _review(client, headers, world.alice, req["id"], "APPROVED")
    assert r.status_code == 403, r.text


@pytest.mark.integration
async def test_review_unknown_request_is_404(client, world, headers):
    r = await _review(client, headers, world.admin, str(world.lead.id), "APPROVED")
    assert r.status_code == 404, r.text
    assert r.json()["errorCode"] == "REQUEST_NOT_FOUND"

    r = await client.put(
        f"/api/admin/requests/{world.lead.id}", json={"status": "PENDING"}, headers=headers(world.admin)
    )
    assert r.status_code == 400, r.text
