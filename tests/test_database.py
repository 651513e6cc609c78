import asyncio

import pytest
from sqlalchemy import select, text

from policyflow.config import settings
from policyflow.core.errors import InternalError
from policyflow.database import _acquire_within, serialized_write
from policyflow.departments.models import Department


@pytest.mark.asyncio
async def test_serialized_write_commits_on_exit(session_factory):
    async with session_factory() as session:
        async with serialized_write(session):
            session.add(Department(name="Facilities"))

    async with session_factory() as session:
        names = (await session.execute(select(Department.name))).scalars().all()
    assert names == ["Facilities"]


@pytest.mark.asyncio
async def test_serialized_write_rolls_back_on_error(session_factory):
    async with session_factory() as session:
        with pytest.raises(RuntimeError):
            async with serialized_write(session):
                session.add(Department(name="Facilities"))
                await session.flush()
                raise RuntimeError("boom")

    async with session_factory() as session:
        names = (await session.execute(select(Department.name))).scalars().all()
    assert names == []


@pytest.mark.asyncio
async def test_waiting_writer_times_out(session_factory, monkeypatch):
    monkeypatch.setattr(settings, "WRITE_LOCK_TIMEOUT_SECONDS", 0.05)
    async with session_factory() as holder, session_factory() as waiter:
        async with serialized_write(holder):
            with pytest.raises(InternalError):
                async with serialized_write(waiter):
                    pass

        # The timed-out waiter must not have kept the lock
        async with serialized_write(waiter):
            waiter.add(Department(name="Facilities"))

    async with session_factory() as session:
        names = (await session.execute(select(Department.name))).scalars().all()
    assert names == ["Facilities"]


@pytest.mark.asyncio
async def test_acquire_finishing_at_the_timeout_is_released():
    lock = asyncio.Lock()
    # A zero timeout races the acquire of a free lock; either outcome is allowed
    try:
        await _acquire_within(lock, 0)
    except asyncio.TimeoutError:
        assert not lock.locked()
    else:
        assert lock.locked()
        lock.release()


@pytest.mark.asyncio
async def test_acquire_gives_up_on_a_held_lock():
    lock = asyncio.Lock()
    await lock.acquire()
    with pytest.raises(asyncio.TimeoutError):
        await _acquire_within(lock, 0.01)
    lock.release()
    await _acquire_within(lock, 0.01)
    assert lock.locked()
    lock.release()


@pytest.mark.asyncio
async def test_sqlite_pragmas_are_applied(db_session):
    assert (await db_session.execute(text("PRAGMA foreign_keys"))).scalar() == 1
    assert (await db_session.execute(text("PRAGMA journal_mode"))).scalar() == "wal"


def test_department_name_constraint_matches_migration():
    names = {c.name for c in Department.__table__.constraints}
    assert "uq_departments_name" in names
