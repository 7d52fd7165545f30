"""Shared pytest fixtures for unit and integration tests.

The app is exercised in-process over ASGI against a throw-away SQLite file;
Redis calls go to an in-memory dict.
"""
import os
import tempfile
from datetime import time
from types import SimpleNamespace

# Must be set before anything imports roster.config / roster.db.
_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="roster-tests-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ["DEV_MODE"] = "false"
os.environ["SMTP_HOST"] = ""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from roster.db import Base, SessionLocal, engine, redis_client
from roster.models import Building, Role, ShiftType, User


class InMemoryRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        return True

    async def incr(self, key):
        self.data[key] = str(int(self.data.get(key) or 0) + 1)
        return int(self.data[key])

    async def ping(self):
        return True


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    fake = InMemoryRedis()
    for name in ("get", "set", "incr", "ping"):
        monkeypatch.setattr(redis_client, name, getattr(fake, name))
    return fake


@pytest_asyncio.fixture
async def reset_db():
    """Fresh schema for every test that touches the database."""
    from roster import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def session(reset_db):
    async with SessionLocal() as s:
        yield s


@pytest_asyncio.fixture
async def client(reset_db):
    from roster.main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


def auth(user) -> dict:
    return {"X-User-Id": str(user.id)}


@pytest.fixture
def headers():
    return auth


@pytest_asyncio.fixture
async def make_user(session):
    async def _make(full_name: str, *, admin=False, manager=False, inspector=False) -> User:
        user = User(
            username=full_name.lower().replace(" ", ".") + "@example.com",
            full_name=full_name,
            is_admin=admin,
            is_manager=manager,
            is_inspector=inspector,
        )
        session.add(user)
        await session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def world(session, make_user):
    """Admin, two supervising managers, three inspectors, two buildings and reference data."""
    admin = await make_user("Priya Smith", admin=True)
    manager = await make_user("Morgan Lee", manager=True)
    other_manager = await make_user("Sam Ortiz", manager=True)
    alice = await make_user("Alice Adams", inspector=True)
    bob = await make_user("Bob Brown", inspector=True)
    carol = await make_user("Carol Clark", inspector=True)

    morning = ShiftType(name="Morning", start_time=time(6, 0), end_time=time(14, 0))
    night = ShiftType(name="Night", start_time=time(22, 0), end_time=time(6, 0))
    lead = Role(name="Lead Inspector")
    fire = Role(name="Fire Safety")
    hq = Building(name="Head Office", code="HQ", area="Downtown", supervisor_id=manager.id)
    warehouse = Building(name="North Warehouse", code="WH1", area="Industrial", supervisor_id=other_manager.id)
    session.add_all([morning, night, lead, fire, hq, warehouse])
    await session.commit()
    return SimpleNamespace(
        admin=admin,
        manager=manager,
        other_manager=other_manager,
        alice=alice,
        bob=bob,
        carol=carol,
        morning=morning,
        night=night,
        lead=lead,
        fire=fire,
        hq=hq,
        warehouse=warehouse,
    )


@pytest.fixture
def schedule_week(client, world):
    """Create a week for a building with one inspector group, optionally rostered, through the admin API."""

    async def _schedule(building, week, *, role=None, shift_type=None, days=(1,), inspectors=()):
        admin = auth(world.admin)
        r = await client.post("/api/admin/shifts", json={"buildingId": str(building.id), "week": week}, headers=admin)
        assert r.status_code == 201, r.text
        shift_id = r.json()["id"]
        shift_type = shift_type or world.morning
        r = await client.post(
            f"/api/admin/shifts/{shift_id}/inspector-groups",
            json={
                "name": f"{building.code} crew",
                "roleId": str((role or world.lead).id),
                "days": [{"dayOfWeek": d, "shiftTypeId": str(shift_type.id)} for d in days],
            },
            headers=admin,
        )
        assert r.status_code == 201, r.text
        group_id = r.json()["inspectorGroup"]["id"]
        for inspector, is_backup in inspectors:
            r = await client.post(
                f"/api/admin/inspector-groups/{group_id}/inspectors",
                json={"inspectorId": str(inspector.id), "isBackup": is_backup},
                headers=admin,
            )
            assert r.status_code == 201, r.text
        return SimpleNamespace(shift_id=shift_id, group_id=group_id)

    return _schedule
