"""Unit tests for progression stores (habitquest/store/progression_store.py)"""
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from habitquest.core.database import init_db
from habitquest.core.exceptions import PersistenceError
from habitquest.schemas.progression import ProgressionState
from habitquest.store.progression_store import InMemoryProgressionStore, SqlProgressionStore

from tests.helpers import utc


@pytest.fixture
def sample_state():
    return ProgressionState(
        level=4,
        xp=120,
        coins=310,
        total_xp=720,
        habits_completed=18,
        streak_current=6,
        streak_longest=9,
        last_completion_at=utc(day=3, hour=7, minute=45),
        achievements=("first-habit", "streak-3", "xp-100"),
        last_reward_dates={"spin": date(2024, 5, 3)},
    )


async def disk_failure(*args, **kwargs):
    raise OperationalError("statement", {}, Exception("disk I/O error"))


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'progress.db'}")
    await init_db(engine)
    yield SqlProgressionStore(async_sessionmaker(engine, expire_on_commit=False))
    await engine.dispose()


# ============================================================================
# In-memory Store Tests
# ============================================================================

@pytest.mark.asyncio
async def test_in_memory_round_trip(sample_state, test_user_id):
    store = InMemoryProgressionStore()

    assert await store.load(test_user_id) is None

    await store.save(test_user_id, sample_state)
    assert await store.load(test_user_id) == sample_state

    await store.delete(test_user_id)
    assert await store.load(test_user_id) is None


# ============================================================================
# SQL Store Tests
# ============================================================================

@pytest.mark.asyncio
async def test_sql_load_missing_user(sql_store):
    assert await sql_store.load("nobody") is None


@pytest.mark.asyncio
async def test_sql_round_trip(sql_store, sample_state, test_user_id):
    await sql_store.save(test_user_id, sample_state)

    loaded = await sql_store.load(test_user_id)

    assert loaded == sample_state
    assert loaded.last_completion_at.tzinfo is not None
    assert loaded.achievements == ("first-habit", "streak-3", "xp-100")


@pytest.mark.asyncio
async def test_sql_save_overwrites(sql_store, sample_state, test_user_id):
    await sql_store.save(test_user_id, ProgressionState())
    await sql_store.save(test_user_id, sample_state)

    assert await sql_store.load(test_user_id) == sample_state


@pytest.mark.asyncio
async def test_sql_users_are_isolated(sql_store, sample_state):
    await sql_store.save("alice", sample_state)
    await sql_store.save("bob", ProgressionState(coins=3))

    assert (await sql_store.load("alice")).coins == 310
    assert (await sql_store.load("bob")).coins == 3


@pytest.mark.asyncio
async def test_sql_delete(sql_store, sample_state, test_user_id):
    await sql_store.save(test_user_id, sample_state)
    await sql_store.delete(test_user_id)

    assert await sql_store.load(test_user_id) is None


# ============================================================================
# SQL Failure Tests
# ============================================================================

@pytest.mark.asyncio
async def test_sql_failed_save_rolls_back(sql_store, sample_state, test_user_id, monkeypatch):
    await sql_store.save(test_user_id, sample_state)

    monkeypatch.setattr(AsyncSession, "commit", disk_failure)
    with pytest.raises(PersistenceError) as exc_info:
        await sql_store.save(test_user_id, ProgressionState(coins=1))
    monkeypatch.undo()

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert exc_info.value.details == {"user_id": test_user_id}
    assert await sql_store.load(test_user_id) == sample_state


@pytest.mark.asyncio
async def test_sql_failed_load_is_wrapped(sql_store, test_user_id, monkeypatch):
    monkeypatch.setattr(AsyncSession, "execute", disk_failure)

    with pytest.raises(PersistenceError):
        await sql_store.load(test_user_id)


@pytest.mark.asyncio
async def test_sql_failed_delete_keeps_row(sql_store, sample_state, test_user_id, monkeypatch):
    await sql_store.save(test_user_id, sample_state)

    monkeypatch.setattr(AsyncSession, "execute", disk_failure)
    with pytest.raises(PersistenceError):
        await sql_store.delete(test_user_id)
    monkeypatch.undo()

    assert await sql_store.load(test_user_id) == sample_state
